"""
Registrar - CLI Entry Point.

Usage:
    registrar onboard            Register a business agent interactively
    registrar registry           Print the registry (users + agents)
    registrar serve              Start the onboarding API
    registrar --help             Show help
"""

import asyncio
import json

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

app = typer.Typer(
    name="registrar",
    help="Registrar - onboard business agents into the agent registry.",
    add_completion=False,
)
console = Console()

BACK = "<"


def _render_header(engine) -> None:
    from onboarding.state import STEP_LABELS, STEP_SUBTITLES, STEP_TITLES, Step, step_caption

    step = engine.step
    trail = " > ".join(
        f"[bold cyan]{STEP_LABELS[s]}[/bold cyan]" if s == step else f"[dim]{STEP_LABELS[s]}[/dim]"
        for s in Step
    )
    console.print(trail)
    console.print(
        Panel.fit(
            f"[bold]{STEP_TITLES[step]}[/bold]\n[dim]{STEP_SUBTITLES[step]}[/dim]",
            title=f"{step_caption(step)} - {engine.progress}%",
            border_style="cyan",
        )
    )


def _report(outcome) -> None:
    if outcome is None or outcome.ok:
        return
    if outcome.error:
        console.print(f"[red]{outcome.error}[/red]")
    for name, message in outcome.field_errors.items():
        console.print(f"[red]  {name}: {message}[/red]")


def _ask(label: str, current: str) -> str:
    return Prompt.ask(label, default=current or None) or ""


def _render_review(engine) -> None:
    person, company, goals = engine.person, engine.company, engine.goals
    table = Table(show_header=False, box=None)
    table.add_row("[bold]Owner[/bold]", person.full_name)
    table.add_row("Role", person.role_title or "N/A")
    table.add_row("Email", person.email)
    table.add_row("[bold]Company[/bold]", company.company_name)
    table.add_row("Website", company.website)
    table.add_row("Pricing", company.pricing_model)
    table.add_row("Services", ", ".join(company.services) or "-")
    table.add_row("[bold]Short-term[/bold]", goals.short_term or "-")
    table.add_row("Long-term", goals.long_term or "-")
    console.print(table)


async def _run_wizard(engine) -> None:
    from onboarding.state import Step

    while engine.step != Step.SUCCESS:
        _render_header(engine)
        step = engine.step

        if step == Step.SIGN_UP:
            person = engine.person
            engine.update_person(
                first_name=_ask("First name", person.first_name),
                last_name=_ask("Last name", person.last_name),
                email=_ask("Business email", person.email),
                role_title=_ask("Role title (optional)", person.role_title),
            )
            with console.status("Sending code..."):
                outcome = await engine.advance()

        elif step == Step.VERIFY_CODE:
            console.print(f"Code sent to [bold]{engine.person.email}[/bold]  [dim]({BACK} to go back)[/dim]")
            code = Prompt.ask("Code")
            if code.strip() == BACK:
                engine.retreat()
                continue
            engine.set_code(code)
            with console.status("Verifying..."):
                outcome = await engine.advance()

        elif step == Step.COMPANY_INFO:
            if Confirm.ask("Autofill company details from your email domain?", default=True):
                with console.status("Autofilling..."):
                    _report(await engine.autofill_company())
            company = engine.company
            engine.update_company(
                company_name=_ask("Company name", company.company_name),
                website=_ask("Website", company.website),
                ein=_ask("EIN (optional)", company.ein),
                pricing_model=Prompt.ask(
                    "Pricing model",
                    choices=list(engine.config.pricing_models),
                    default=company.pricing_model,
                ),
                policies=_ask("Compliance and policy notes", company.policies),
            )
            engine.set_services_text(_ask("Services (separate with periods)", ". ".join(company.services)))
            outcome = await engine.advance()

        elif step == Step.GOALS:
            if Confirm.ask("Generate a goal draft from your company profile?", default=True):
                with console.status("Generating..."):
                    _report(await engine.generate_goals())
            goals = engine.goals
            engine.update_goals(
                short_term=_ask("Short-term goals (3-6 months)", goals.short_term),
                long_term=_ask("Long-term goals (1-3 years)", goals.long_term),
            )
            outcome = await engine.advance()

        else:
            _render_review(engine)
            if not Confirm.ask("Create business agent?", default=True):
                engine.retreat()
                continue
            with console.status("Creating agent..."):
                outcome = await engine.submit()

        _report(outcome)

    _render_header(engine)
    console.print(f"Agent ID: [bold cyan]{engine.result.agent_id}[/bold cyan]")


@app.command()
def onboard(
    show_registry: bool = typer.Option(False, "--show-registry", help="Print the registry after registering"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log LLM prompts to prompt_logs/"),
) -> None:
    """Register a business agent step by step."""
    from onboarding.api import build_default_engine
    from registrar.config import configure_logging
    from registrar.llm.prompt_logger import enable_prompt_logging

    configure_logging("WARNING")
    if log_prompts:
        enable_prompt_logging(True)
        console.print("[dim]Prompt logging enabled. Check prompt_logs/ after the session.[/dim]")

    engine = build_default_engine()

    async def _session():
        await _run_wizard(engine)
        if show_registry:
            _report(await engine.toggle_registry())
            console.print_json(json.dumps(
                {"users": engine.state.registry.users, "agents": engine.state.registry.agents},
                default=str,
            ))

    try:
        asyncio.run(_session())
    except KeyboardInterrupt:
        console.print("\n[dim]Onboarding cancelled.[/dim]")
        raise typer.Exit(1)


@app.command()
def registry() -> None:
    """Print the full registry as JSON."""
    from onboarding.registry import SupabaseRegistryService
    from onboarding.services import OnboardingServiceError
    from registrar.config import settings

    service = SupabaseRegistryService(
        users_table=settings.users_table,
        agents_table=settings.agents_table,
    )
    try:
        snapshot = asyncio.run(service.read_all())
    except OnboardingServiceError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print_json(json.dumps({"users": snapshot.users, "agents": snapshot.agents}, default=str))


@app.command()
def version() -> None:
    """Show version information."""
    from registrar import __version__

    console.print(f"Registrar version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the onboarding API server."""
    import uvicorn

    console.print("\n[bold green]Registrar API[/bold green]")
    console.print(f"Starting server on http://localhost:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "registrar.web.app:app",
        host="0.0.0.0",
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()

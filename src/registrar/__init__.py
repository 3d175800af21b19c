"""
Registrar - onboarding of business agents into the agent registry.

Packages:
- registrar: settings, LLM client, Supabase client, CLI and web app
- onboarding: the intake wizard (state machine, validation, collaborators)
"""

__version__ = "1.0.0"

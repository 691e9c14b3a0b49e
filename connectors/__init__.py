"""
connectors — external service connections for the agent.

Handles:
  • Verifying long-lived, user-supplied credentials (API keys, PATs)
  • Tracking each provider's connection status over time
  • Fernet encryption of credentials at rest
  • One uniform ``execute(action, params, token)`` per provider

Each provider (GitHub, Vercel, Stripe, …) is a subclass of BaseConnector.
"""

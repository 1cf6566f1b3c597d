"""
Core wiring.

- ports.py: Protocols the core depends on (stores, transport, credentials)
- auth.py: token-backed CredentialProvider
- session.py: one authenticated session (channel lifetime + event routing)
"""

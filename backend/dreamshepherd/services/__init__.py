"""Service layer: identity lifecycle use cases (intro sessions, accounts, tokens, upgrade)."""

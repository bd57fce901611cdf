"""Reference web host for the step-up authenticator."""

"""Sapphire GDPR engine — consent state, data export, and account deletion."""

"""HTTP surface of the GDPR engine."""

"""GDPR core — consent store, audit log, data export, erasure."""

"""Signing, transport, orchestration and aggregate reading."""

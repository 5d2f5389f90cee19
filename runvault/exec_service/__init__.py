"""Execution service: same-origin HTTP bridge to native toolchains."""

"""Crate acquisition pipeline: cache lookup, download, verification and extraction."""

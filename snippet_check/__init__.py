"""Validate code examples embedded in documents by executing them."""

"""Prompting package.

This package turns raw command text into ordered positive/negative term lists.
It does not perform translation, network access or model invocation.
"""

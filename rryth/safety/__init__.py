"""Safety package.

This package contains the rule-based forbidden-term helpers used by prompt
compilation to decide whether a request may proceed, and which terms must be
stripped before it does.
"""

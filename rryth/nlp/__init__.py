"""Language helpers package.

Currently limited to best-effort translation of CJK prompt fragments.
"""

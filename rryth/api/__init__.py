"""API adapter package.

Contains the command-line grammar shared by all surfaces, the interactive CLI,
and the FastAPI HTTP adapter. Adapters delegate all work to
`rryth.core.engine.ImageOrchestrator`.
"""

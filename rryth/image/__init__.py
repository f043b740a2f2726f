"""Image generation adapter package.

Scope:
    Downloads source images for image-to-image requests, maps compiled prompts to
    backend payloads and performs the single backend POST per invocation.

Non-goals:
    - No multi-backend routing.
    - No retry or polling loop; one attempt per user command.
"""

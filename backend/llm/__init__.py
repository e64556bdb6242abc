"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build pricing and description prompts from a listing and its competitors.
- Call Groq in JSON mode and validate the completion.
- Deterministic rule-based fallback when the LLM is unavailable or returns invalid output.
"""

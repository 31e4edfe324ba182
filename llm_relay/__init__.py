"""
LLM Relay: Provider Routing Multiplexer

Accepts generation requests and dispatches each one to the best available
large-language-model backend, falling back across providers in a fixed,
operator-configured priority order.
"""

__version__ = "0.1.0"

"""Google News headlines aggregator with optional LLM headline rewriting."""

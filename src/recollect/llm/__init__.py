"""
LLM module - language model provider abstraction.

Providers:
- claude: Anthropic Claude API (primary)
- litellm: Any model from the YAML registry via LiteLLM (fallback)

Router selects provider based on task and availability.
"""

"""
Pricing - rough cost estimation from token counts

Prices are USD per 1M tokens. Lookup is an exact model match first, then
the longest known prefix (so dated snapshots such as
"claude-3-5-sonnet-20241022" resolve to their family). Unknown models have
no price: the estimate is None, never zero.
"""

from typing import Dict, Optional


# Model pricing (USD per 1M tokens)
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    # OpenAI
    "gpt-4.1": {"input": 2.0, "output": 8.0},
    "gpt-4.1-mini": {"input": 0.4, "output": 1.6},
    "gpt-4o": {"input": 2.5, "output": 10.0},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4-turbo": {"input": 10.0, "output": 30.0},
    "gpt-4": {"input": 30.0, "output": 60.0},
    "gpt-3.5-turbo": {"input": 0.5, "output": 1.5},
    "o1": {"input": 15.0, "output": 60.0},
    "o1-mini": {"input": 3.0, "output": 12.0},
    "o3-mini": {"input": 1.1, "output": 4.4},
    "text-embedding-3-small": {"input": 0.02, "output": 0.0},
    "text-embedding-3-large": {"input": 0.13, "output": 0.0},

    # Anthropic
    "claude-opus-4": {"input": 15.0, "output": 75.0},
    "claude-sonnet-4": {"input": 3.0, "output": 15.0},
    "claude-haiku-4-5": {"input": 1.0, "output": 5.0},
    "claude-3-7-sonnet": {"input": 3.0, "output": 15.0},
    "claude-3-5-sonnet": {"input": 3.0, "output": 15.0},
    "claude-3-5-haiku": {"input": 0.8, "output": 4.0},
    "claude-3-opus": {"input": 15.0, "output": 75.0},
    "claude-3-haiku": {"input": 0.25, "output": 1.25},

    # Google
    "gemini-2.5-pro": {"input": 1.25, "output": 10.0},
    "gemini-2.5-flash": {"input": 0.3, "output": 2.5},
    "gemini-2.0-flash": {"input": 0.1, "output": 0.4},
    "gemini-1.5-pro": {"input": 1.25, "output": 5.0},
    "gemini-1.5-flash": {"input": 0.075, "output": 0.3},

    # DeepSeek
    "deepseek-chat": {"input": 0.27, "output": 1.1},
    "deepseek-reasoner": {"input": 0.55, "output": 2.19},
}


def get_model_pricing(model: Optional[str]) -> Optional[Dict[str, float]]:
    """
    Resolve the price entry for a model id

    Args:
        model: Model identifier, possibly a dated snapshot

    Returns:
        {"input": ..., "output": ...} or None when the model is unknown
    """
    if not model:
        return None

    key = model.lower()
    if key in MODEL_PRICING:
        return MODEL_PRICING[key]

    best: Optional[str] = None
    for known in MODEL_PRICING:
        if key.startswith(known) and (best is None or len(known) > len(best)):
            best = known

    return MODEL_PRICING[best] if best else None


def estimate_cost(
    provider: Optional[str],
    model: Optional[str],
    prompt_tokens: int = 0,
    completion_tokens: int = 0,
) -> Optional[float]:
    """
    Estimate request cost in USD

    The provider is accepted for symmetry with event records; model ids
    are unique enough across providers to price on their own.
    """
    pricing = get_model_pricing(model)
    if pricing is None:
        return None

    input_cost = (prompt_tokens or 0) / 1_000_000 * pricing["input"]
    output_cost = (completion_tokens or 0) / 1_000_000 * pricing["output"]
    return input_cost + output_cost


__all__ = [
    "MODEL_PRICING",
    "get_model_pricing",
    "estimate_cost",
]

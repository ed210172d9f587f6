"""
Liquid Glass - Effects Registry
Provides a uniform lookup for the glass effect functions.
Every effect is a function: (uv: Coord, pointer, **params) -> Coord
"""

from functools import partial

from effects.glass import identity, liquid_glass, pointer_lens

# Master registry: name -> (function, default_params, description)
EFFECTS = {
    "identity": {
        "fn": identity,
        "category": "static",
        "params": {},
        "description": "No distortion (every pixel samples itself)",
        "reads_pointer": False,
    },
    "liquid_glass": {
        "fn": liquid_glass,
        "category": "static",
        "params": {
            "half_width": 0.3,
            "half_height": 0.2,
            "radius": 0.6,
            "inset": 0.15,
            "falloff": 0.8,
        },
        "description": "Rounded-box lens, flat centre with a warped rim",
        "reads_pointer": False,
    },
    "pointer_lens": {
        "fn": pointer_lens,
        "category": "interactive",
        "params": {"radius": 0.25, "strength": 0.5},
        "description": "Magnifier that follows the pointer",
        "reads_pointer": True,
    },
}

DEFAULT_EFFECT = "liquid_glass"

CATEGORIES = {
    "static": "STATIC",
    "interactive": "INTERACTIVE",
}


def get_effect(name: str = DEFAULT_EFFECT, **params):
    """Get an effect by name, bound to its parameters.

    Args:
        name: Registry name.
        **params: Overrides for the registry defaults.

    Returns:
        A callable (uv, pointer) -> Coord.

    Raises:
        ValueError: If the effect or a parameter name doesn't exist.
    """
    if name not in EFFECTS:
        available = ", ".join(sorted(EFFECTS.keys()))
        raise ValueError(f"Unknown effect: {name}. Available: {available}")
    entry = EFFECTS[name]
    unknown = set(params) - set(entry["params"])
    if unknown:
        raise ValueError(
            f"Unknown param(s) for {name}: {', '.join(sorted(unknown))}. "
            f"Accepted: {', '.join(entry['params']) or 'none'}"
        )
    merged = {**entry["params"], **params}
    if not merged:
        return entry["fn"]
    return partial(entry["fn"], **merged)


def list_effects(category: str = None) -> list[dict]:
    """List all available effects with descriptions.

    Args:
        category: Optional filter, only return effects in this category.
    """
    results = []
    for name, entry in EFFECTS.items():
        if category and entry.get("category") != category:
            continue
        results.append({
            "name": name,
            "description": entry["description"],
            "params": entry["params"],
            "category": entry.get("category", "static"),
            "reads_pointer": entry["reads_pointer"],
        })
    return results


def list_categories() -> list[str]:
    """Return ordered list of category keys."""
    return list(CATEGORIES.keys())

# fallback.py
# category-aware generic action/photo pairing when the idea bank has no match

from typing import Callable, Iterable, List, Optional, Tuple

from models import FallbackPairing

# (category keywords, action template, photo prompt); first hit wins
_TEMPLATES: List[Tuple[Tuple[str, ...], str, str]] = [
    (
        ("arcade", "barcade", "video_game_store"),
        "Team up at {name} and chase high scores or try the photo booth, loser buys the next round of tokens!",
        "Pose mid-game at your favorite machine with your most intense gamer face",
    ),
    (
        ("bar", "wine_bar", "brewpub"),
        "Grab a cozy corner at {name}, compare sips, and trade a one-line review of your drink",
        "Clink glasses and capture a moody cheers shot at the bar",
    ),
    (
        ("bubble_tea", "cafe", "dessert_shop"),
        "Pick two treats at {name} and swap first bites while you people-watch",
        "Hold your drinks or sweets for a playful product-shot selfie",
    ),
    (
        ("restaurant",),
        "Share plates at {name} and each declare an over-the-top 'dish of the night'",
        "Snap a foodie glam shot with your favorite plate front and center",
    ),
]

_DEFAULT = (
    "Explore {name} together and each call out one detail you'd steal for your dream date spot",
    "Take a candid walking shot outside the venue sign",
)


def build_fallback(name: str, categories: Optional[Iterable[str]]) -> FallbackPairing:
    cats = {c.lower() for c in (categories or [])}
    has: Callable[[Tuple[str, ...]], bool] = lambda keys: any(k in cats for k in keys)

    for keys, action, photo in _TEMPLATES:
        if has(keys):
            return FallbackPairing(action=action.format(name=name), photo=photo)
    action, photo = _DEFAULT
    return FallbackPairing(action=action.format(name=name), photo=photo)

from __future__ import annotations

import random


DEFAULT_WORDS_DRAWING = [
    "apple", "banana", "bicycle", "bridge", "butterfly", "cactus", "camera",
    "candle", "castle", "cat", "cloud", "compass", "crown", "dinosaur",
    "dolphin", "dragon", "drum", "elephant", "feather", "fire truck",
    "fishing rod", "flower", "ghost", "giraffe", "guitar", "hamburger",
    "hammer", "helicopter", "house", "ice cream", "island", "kangaroo", "kite",
    "ladder", "lighthouse", "lemon", "lion", "lollipop", "moon", "mountain",
    "mushroom", "octopus", "owl", "palm tree", "panda", "parachute", "penguin",
    "piano", "pirate", "pizza", "rainbow", "robot", "rocket", "sandwich",
    "scissors", "snail", "snowman", "spider", "submarine", "sun", "sunflower",
    "telescope", "tent", "tornado", "tractor", "train", "tree", "umbrella",
    "unicorn", "volcano", "waterfall", "whale", "windmill", "wizard", "zebra",
]

DEFAULT_WORDS_LETTERS = [
    "anchor", "balloon", "blanket", "bottle", "candle", "carpet", "circus",
    "coffee", "cookie", "desert", "dragon", "engine", "forest", "garden",
    "glacier", "hammock", "harbor", "jacket", "jungle", "kettle", "kitten",
    "ladder", "lantern", "marble", "meadow", "mirror", "monkey", "napkin",
    "orange", "oyster", "parrot", "pencil", "pepper", "pillow", "planet",
    "puzzle", "rabbit", "rocket", "saddle", "silver", "spider", "squirrel",
    "summer", "teapot", "thunder", "ticket", "tomato", "tunnel", "turtle",
    "velvet", "violin", "walnut", "window", "winter", "wizard", "yogurt",
]

WORDS_BY_VARIANT = {
    "drawing": DEFAULT_WORDS_DRAWING,
    "word-guess": DEFAULT_WORDS_LETTERS,
}


def words_for(variant: str) -> list[str]:
    return WORDS_BY_VARIANT.get(variant, DEFAULT_WORDS_DRAWING)


def pick_words(words: list[str], count: int, rng: random.Random | None = None) -> list[str]:
    unique = list(dict.fromkeys(w for w in words if w))
    if not unique:
        return []
    r = rng or random
    return r.sample(unique, min(count, len(unique)))


def pick_word(words: list[str], used: set[str] | None = None, rng: random.Random | None = None) -> str:
    """Pick one word uniformly at random.

    When ``used`` is given, words already in it are skipped and the pick is
    recorded. Once every word has been used the set is reset.
    """
    if used is None:
        return pick_words(words, 1, rng)[0]

    candidates = [w for w in dict.fromkeys(words) if w not in used]
    if not candidates:
        used.clear()
        candidates = list(dict.fromkeys(words))

    word = (rng or random).choice(candidates)
    used.add(word)
    return word

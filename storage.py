import copy
import json
import logging
import pathlib

import compass


DATA_PATH = pathlib.Path("data")
USER_PATH = DATA_PATH / "user.json"

MIN_RATING = 1
MAX_RATING = 5

DEFAULT_PREFERENCES = {
    "genres": [],
    "creators": [],
    "excluded_genres": [],
    "mood_preference": {"x": compass.CENTER[0], "y": compass.CENTER[1]},
    "period_preference": [],
}

DEFAULT_USER = {
    "is_profile_complete": False,
    "preferences": DEFAULT_PREFERENCES,
    "watched_content": [],
    "saved_content": [],
    "personal_ratings": {},
}

logger = logging.getLogger(__name__)


def default_user():
    return copy.deepcopy(DEFAULT_USER)


def load_user(user_path=None):
    path = _resolve_user_path(user_path)
    if not path.exists():
        user = default_user()
        save_user(user, path)
        return user
    try:
        with path.open("r", encoding="utf-8") as fh:
            stored = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Could not read user data from %s: %s", path, exc)
        return default_user()
    if not isinstance(stored, dict):
        logger.error("User data in %s is not an object, using defaults", path)
        return default_user()
    return _with_defaults(stored)


def save_user(user, user_path=None):
    path = _resolve_user_path(user_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        json.dump(user, fh, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


def get_preferences(user_path=None):
    return load_user(user_path)["preferences"]


def update_preferences(partial, user_path=None):
    user = load_user(user_path)
    user["preferences"] = {**user["preferences"], **(partial or {})}
    user["is_profile_complete"] = True
    save_user(user, user_path)
    return user["preferences"]


def get_excluded_genre_ids(user_path=None):
    excluded = get_preferences(user_path).get("excluded_genres", [])
    ids = set()
    for entry in excluded:
        genre_id = entry.get("id") if isinstance(entry, dict) else entry
        if genre_id is not None:
            ids.add(int(genre_id))
    return ids


def save_mood_position(x, y, user_path=None):
    point = compass.clamp_position(x, y)
    user = load_user(user_path)
    user["preferences"]["mood_preference"] = {"x": point.x, "y": point.y}
    save_user(user, user_path)
    return user["preferences"]


def get_mood_position(user_path=None):
    mood = get_preferences(user_path).get("mood_preference") or {}
    return compass.clamp_position(
        mood.get("x", compass.CENTER[0]), mood.get("y", compass.CENTER[1])
    )


def add_watched(content_id, user_path=None):
    return _add_to_list("watched_content", content_id, user_path)


def add_saved(content_id, user_path=None):
    return _add_to_list("saved_content", content_id, user_path)


def remove_saved(content_id, user_path=None):
    user = load_user(user_path)
    user["saved_content"] = [
        saved for saved in user["saved_content"] if saved != int(content_id)
    ]
    save_user(user, user_path)
    return user["saved_content"]


def rate_content(content_id, rating, user_path=None):
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValueError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    user = load_user(user_path)
    user["personal_ratings"][str(int(content_id))] = rating
    save_user(user, user_path)
    return user["personal_ratings"]


def _add_to_list(key, content_id, user_path):
    user = load_user(user_path)
    content_id = int(content_id)
    if content_id not in user[key]:
        user[key].append(content_id)
        save_user(user, user_path)
    return user[key]


def _with_defaults(stored):
    user = default_user()
    user.update(stored)
    preferences = copy.deepcopy(DEFAULT_PREFERENCES)
    preferences.update(stored.get("preferences") or {})
    user["preferences"] = preferences
    return user


def _resolve_user_path(user_path):
    return pathlib.Path(user_path) if user_path else USER_PATH

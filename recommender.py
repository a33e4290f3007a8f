import datetime
from collections import namedtuple

import compass


QueryParameters = namedtuple("QueryParameters", ["genre_ids", "sort_key"])

MIN_VOTES_FOR_QUALITY_SORT = 100
FIRST_DECADE = 1900


def derive_params(classification, excluded_genre_ids=()):
    if classification.neutral:
        return QueryParameters(frozenset(), compass.POPULARITY_DESC)

    sector = classification.sector
    genre_ids = frozenset(sector["genre_ids"]) - frozenset(excluded_genre_ids)
    if classification.intensity == compass.INTENSE:
        sort_key = sector["high_sort"]
    else:
        sort_key = sector["low_sort"]
    return QueryParameters(genre_ids, sort_key)


def params_for_position(x, y, excluded_genre_ids=()):
    classification = compass.classify_position(x, y)
    return classification, derive_params(classification, excluded_genre_ids)


def build_discover_params(query, page=1):
    params = {"sort_by": query.sort_key, "page": page}

    if query.genre_ids:
        params["with_genres"] = _join_ids(query.genre_ids)

    if query.sort_key == compass.VOTE_AVERAGE_DESC:
        params["vote_count.gte"] = MIN_VOTES_FOR_QUALITY_SORT
    return params


def recommended_params(preferences, page=1):
    genre_ids = _ids_of(preferences.get("genres", []))
    excluded_ids = _ids_of(preferences.get("excluded_genres", []))

    params = {"sort_by": compass.POPULARITY_DESC, "page": page}
    if genre_ids:
        params["with_genres"] = _join_ids(genre_ids)
    if excluded_ids:
        params["without_genres"] = _join_ids(excluded_ids)
    return params


def decade_params(decade, page=1):
    start_year = int(decade)
    current_decade = datetime.date.today().year // 10 * 10
    if start_year % 10 != 0 or not FIRST_DECADE <= start_year <= current_decade:
        raise ValueError(f"Invalid decade: {decade}")
    end_year = start_year + 9
    return {
        "sort_by": compass.POPULARITY_DESC,
        "page": page,
        "primary_release_date.gte": f"{start_year}-01-01",
        "primary_release_date.lte": f"{end_year}-12-31",
    }


def director_params(person_id, page=1):
    return {
        "with_people": person_id,
        "sort_by": "primary_release_date.desc",
        "page": page,
    }


def to_content(raw):
    default_type = "tv" if raw.get("first_air_date") else "movie"
    return {
        "id": raw.get("id", 0),
        "title": raw.get("title") or raw.get("name") or "Unknown Title",
        "type": raw.get("media_type") or default_type,
        "poster_path": raw.get("poster_path") or "",
        "overview": raw.get("overview") or "",
        "release_date": raw.get("release_date") or raw.get("first_air_date") or "",
        "vote_average": raw.get("vote_average") or 0,
        "genre_ids": raw.get("genre_ids")
        or [genre["id"] for genre in raw.get("genres", [])],
    }


def filter_watched(items, watched_ids):
    watched = set(watched_ids or [])
    if not watched:
        return list(items)
    return [item for item in items if item.get("id") not in watched]


def _ids_of(entries):
    ids = []
    for entry in entries:
        genre_id = entry.get("id") if isinstance(entry, dict) else entry
        if genre_id is None:
            continue
        genre_id = int(genre_id)
        if genre_id not in ids:
            ids.append(genre_id)
    return ids


def _join_ids(ids):
    return ",".join(str(genre_id) for genre_id in sorted(ids))

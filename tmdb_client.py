import logging

import requests


BASE_URL = "https://api.themoviedb.org/3"
IMAGE_BASE = "https://image.tmdb.org/t/p/w500"
TIMEOUT = 10
DETAIL_APPENDS = "credits,recommendations,similar"

logger = logging.getLogger(__name__)


class TMDBError(RuntimeError):
    pass


class NetworkError(TMDBError):
    pass


class ProviderTimeoutError(TMDBError):
    pass


class ProviderError(TMDBError):
    pass


class EmptyResultError(TMDBError):
    pass


def _get(url, params, timeout=TIMEOUT):
    try:
        response = requests.get(url, params=params, timeout=timeout)
    except requests.Timeout as exc:
        raise ProviderTimeoutError(f"TMDB request timed out after {timeout}s") from exc
    except requests.RequestException as exc:
        raise NetworkError(f"TMDB unreachable: {exc}") from exc

    if response.status_code != 200:
        logger.warning("TMDB %s returned %s", url, response.status_code)
        raise ProviderError(f"TMDB request failed: {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        raise ProviderError("TMDB returned malformed JSON") from exc


def _base_params(api_key, language):
    return {"api_key": api_key, "language": language}


def get_genre_map(api_key, language):
    url = f"{BASE_URL}/genre/movie/list"
    data = _get(url, _base_params(api_key, language))
    name_to_id = {genre["name"]: genre["id"] for genre in data.get("genres", [])}
    id_to_name = {genre["id"]: genre["name"] for genre in data.get("genres", [])}
    return {"name_to_id": name_to_id, "id_to_name": id_to_name}


def discover(api_key, language, params, media_type="movie", timeout=TIMEOUT):
    kind = "tv" if media_type == "tv" else "movie"
    url = f"{BASE_URL}/discover/{kind}"
    payload = _base_params(api_key, language)
    payload["include_adult"] = False
    payload.update(params)
    data = _get(url, payload, timeout=timeout)
    results = data.get("results")
    if not isinstance(results, list):
        raise ProviderError("TMDB discover payload has no results list")
    return data


def discover_results(api_key, language, params, media_type="movie", timeout=TIMEOUT):
    results = discover(api_key, language, params, media_type, timeout)["results"]
    if not results:
        raise EmptyResultError("TMDB discover returned no results")
    return results


def get_trending(api_key, language, media_type="all", time_window="week", page=1):
    url = f"{BASE_URL}/trending/{media_type}/{time_window}"
    payload = _base_params(api_key, language)
    payload["page"] = page
    return _get(url, payload)


def get_movie(api_key, movie_id, language, append=DETAIL_APPENDS):
    url = f"{BASE_URL}/movie/{movie_id}"
    payload = _base_params(api_key, language)
    if append:
        payload["append_to_response"] = append
    return _get(url, payload)


def get_tv(api_key, tv_id, language, append=DETAIL_APPENDS):
    url = f"{BASE_URL}/tv/{tv_id}"
    payload = _base_params(api_key, language)
    if append:
        payload["append_to_response"] = append
    return _get(url, payload)


def get_person(api_key, person_id, language):
    url = f"{BASE_URL}/person/{person_id}"
    return _get(url, _base_params(api_key, language))


def search(api_key, language, query, page=1, include_adult=False):
    url = f"{BASE_URL}/search/multi"
    payload = _base_params(api_key, language)
    payload.update({"query": query, "page": page, "include_adult": include_adult})
    data = _get(url, payload)
    data["results"] = [
        item
        for item in data.get("results", [])
        if item.get("media_type") in {"movie", "tv"}
    ]
    return data


def get_movie_videos(api_key, movie_id, language):
    url = f"{BASE_URL}/movie/{movie_id}/videos"
    data = _get(url, _base_params(api_key, language))
    return data.get("results", [])


def get_trailer_url(api_key, movie_id, language):
    try:
        videos = get_movie_videos(api_key, movie_id, language)
    except TMDBError:
        return None

    youtube_trailers = [
        video
        for video in videos
        if video.get("site") == "YouTube" and video.get("type") == "Trailer"
    ]
    if not youtube_trailers:
        return None

    youtube_trailers.sort(
        key=lambda v: "official" in v.get("name", "").lower(), reverse=True
    )
    key = youtube_trailers[0].get("key")
    if not key:
        return None
    return f"https://www.youtube.com/watch?v={key}"


def get_poster_url(poster_path):
    if not poster_path:
        return None
    return f"{IMAGE_BASE}{poster_path}"

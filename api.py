"""FastAPI backend: preference storage, TMDB passthrough and the mood socket."""

import asyncio
import logging
import random
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import compass
import recommender
import storage
import tmdb_client
from config import Settings, settings as default_settings
from mood_session import MoodSession

load_dotenv()

logging.basicConfig(
    level=getattr(logging, default_settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)

RANDOM_PAGE_LIMIT = 100


class Genre(BaseModel):
    id: int
    name: str = ""


class Creator(BaseModel):
    id: int
    name: str = ""


class MoodPoint(BaseModel):
    x: float = Field(50, ge=0, le=100)
    y: float = Field(50, ge=0, le=100)


class PreferencesUpdate(BaseModel):
    genres: Optional[list[Genre]] = None
    creators: Optional[list[Creator]] = None
    excluded_genres: Optional[list[Genre]] = None
    mood_preference: Optional[MoodPoint] = None
    period_preference: Optional[list[str]] = None


class ContentRef(BaseModel):
    content_id: int


class RatingPayload(BaseModel):
    content_id: int
    rating: int = Field(ge=storage.MIN_RATING, le=storage.MAX_RATING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(
        title="Mood Compass",
        description="Movie discovery driven by a mood compass",
        version="1.0.0",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(tmdb_client.EmptyResultError)
    async def empty_result_handler(request: Request, exc: tmdb_client.EmptyResultError):
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(tmdb_client.TMDBError)
    async def tmdb_error_handler(request: Request, exc: tmdb_client.TMDBError):
        logger.error("TMDB call for %s failed: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"message": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"message": str(exc)})

    _register_routes(app)
    return app


def _settings(request) -> Settings:
    return request.app.state.settings


def _tmdb(request):
    settings = _settings(request)
    if not settings.tmdb_api_key:
        raise HTTPException(status_code=503, detail="TMDB API key is not configured")
    return settings.tmdb_api_key, settings.tmdb_language


def classification_payload(point, classification):
    polar = compass.to_polar(point.x, point.y)
    return {
        "x": point.x,
        "y": point.y,
        "angle": polar.angle,
        "distance": polar.distance,
        "sector": classification.sector["name"],
        "intensity": classification.intensity,
        "neutral": classification.neutral,
        "description": compass.describe(classification),
        "tip": compass.mood_tip(classification),
    }


def query_payload(query):
    return {"genre_ids": sorted(query.genre_ids), "sort_key": query.sort_key}


def _register_routes(app: FastAPI) -> None:
    @app.get("/")
    def root():
        return {"message": "Mood Compass API", "status": "online", "version": app.version}

    # Users

    @app.get("/api/users/preferences")
    def read_preferences(request: Request):
        return storage.get_preferences(_settings(request).user_data_path)

    @app.put("/api/users/preferences")
    def write_preferences(payload: PreferencesUpdate, request: Request):
        partial = payload.model_dump(exclude_unset=True)
        if not partial:
            raise HTTPException(status_code=400, detail="No preferences provided")
        return storage.update_preferences(partial, _settings(request).user_data_path)

    @app.post("/api/users/watched")
    def mark_watched(payload: ContentRef, request: Request):
        watched = storage.add_watched(payload.content_id, _settings(request).user_data_path)
        return {"watched_content": watched}

    @app.post("/api/users/saved")
    def save_content(payload: ContentRef, request: Request):
        saved = storage.add_saved(payload.content_id, _settings(request).user_data_path)
        return {"saved_content": saved}

    @app.delete("/api/users/saved/{content_id}")
    def unsave_content(content_id: int, request: Request):
        saved = storage.remove_saved(content_id, _settings(request).user_data_path)
        return {"saved_content": saved}

    @app.post("/api/users/rate")
    def rate(payload: RatingPayload, request: Request):
        ratings = storage.rate_content(
            payload.content_id, payload.rating, _settings(request).user_data_path
        )
        return {"personal_ratings": ratings}

    # Content

    @app.get("/api/content/recommended")
    def recommended(request: Request, page: int = Query(1, ge=1)):
        api_key, language = _tmdb(request)
        preferences = storage.get_preferences(_settings(request).user_data_path)
        params = recommender.recommended_params(preferences, page)
        return tmdb_client.discover(api_key, language, params)

    @app.get("/api/content/mood")
    def mood_content(
        request: Request,
        x: float = Query(50, ge=0, le=100),
        y: float = Query(50, ge=0, le=100),
        page: int = Query(1, ge=1),
    ):
        api_key, language = _tmdb(request)
        user_path = _settings(request).user_data_path
        point = compass.clamp_position(x, y)
        classification, query = recommender.params_for_position(
            point.x, point.y, storage.get_excluded_genre_ids(user_path)
        )
        data = tmdb_client.discover(
            api_key, language, recommender.build_discover_params(query, page)
        )
        watched = storage.load_user(user_path)["watched_content"]
        results = recommender.filter_watched(
            [recommender.to_content(item) for item in data["results"]], watched
        )
        return {
            "mood": classification_payload(point, classification),
            "query": query_payload(query),
            "page": data.get("page", page),
            "results": results,
            "message": None if results else "No content found for this mood",
        }

    @app.get("/api/content/time")
    def time_content(request: Request, decade: int = 2020, page: int = Query(1, ge=1)):
        api_key, language = _tmdb(request)
        return tmdb_client.discover(api_key, language, recommender.decade_params(decade, page))

    @app.get("/api/content/director/{person_id}")
    def director_content(person_id: int, request: Request, page: int = Query(1, ge=1)):
        api_key, language = _tmdb(request)
        director = tmdb_client.get_person(api_key, person_id, language)
        movies = tmdb_client.discover(
            api_key, language, recommender.director_params(person_id, page)
        )
        return {"director": director, "movies": movies}

    @app.get("/api/content/random")
    def random_content(request: Request):
        api_key, language = _tmdb(request)
        page = random.randint(1, RANDOM_PAGE_LIMIT)
        results = tmdb_client.discover_results(
            api_key, language, {"sort_by": compass.POPULARITY_DESC, "page": page}
        )
        pick = random.choice(results)
        return tmdb_client.get_movie(
            api_key, pick["id"], language, append="credits,recommendations"
        )

    # TMDB passthrough

    @app.get("/api/tmdb/trending")
    def trending(
        request: Request,
        time_window: str = Query("week", pattern="^(day|week)$"),
        media_type: str = Query("all", pattern="^(all|movie|tv|person)$"),
        page: int = Query(1, ge=1),
    ):
        api_key, language = _tmdb(request)
        return tmdb_client.get_trending(api_key, language, media_type, time_window, page)

    @app.get("/api/tmdb/movie/{movie_id}")
    def movie_details(movie_id: int, request: Request):
        api_key, language = _tmdb(request)
        return tmdb_client.get_movie(api_key, movie_id, language)

    @app.get("/api/tmdb/tv/{tv_id}")
    def tv_details(tv_id: int, request: Request):
        api_key, language = _tmdb(request)
        return tmdb_client.get_tv(api_key, tv_id, language)

    @app.get("/api/tmdb/search")
    def search(
        request: Request,
        query: str = "",
        page: int = Query(1, ge=1),
        include_adult: bool = False,
    ):
        if not query.strip():
            raise HTTPException(status_code=400, detail="The query parameter is required")
        api_key, language = _tmdb(request)
        return tmdb_client.search(api_key, language, query, page, include_adult)

    @app.get("/api/tmdb/discover")
    def discover(
        request: Request,
        media_type: str = Query("movie", pattern="^(movie|tv)$"),
        sort_by: str = compass.POPULARITY_DESC,
        with_genres: Optional[str] = None,
        page: int = Query(1, ge=1),
        release_year: Optional[int] = None,
        vote_average: Optional[float] = None,
    ):
        api_key, language = _tmdb(request)
        params = {"sort_by": sort_by, "page": page}
        if with_genres:
            params["with_genres"] = with_genres
        if vote_average is not None:
            params["vote_average.gte"] = vote_average
        if release_year is not None:
            year_key = "first_air_date_year" if media_type == "tv" else "primary_release_year"
            params[year_key] = release_year
        return tmdb_client.discover(api_key, language, params, media_type)

    # Mood compass socket

    @app.websocket("/ws/mood")
    async def mood_socket(websocket: WebSocket):
        await websocket.accept()
        settings = websocket.app.state.settings
        user_path = settings.user_data_path
        user = await asyncio.to_thread(storage.load_user, user_path)

        async def fetch(query):
            params = recommender.build_discover_params(query)
            results = await asyncio.to_thread(
                tmdb_client.discover_results,
                settings.tmdb_api_key,
                settings.tmdb_language,
                params,
                "movie",
                settings.fetch_timeout,
            )
            return recommender.filter_watched(
                [recommender.to_content(item) for item in results],
                user["watched_content"],
            )

        async def send_contents(session):
            try:
                await websocket.send_json(
                    {
                        "type": "contents",
                        "query": query_payload(session.last_query),
                        "results": session.contents,
                        "message": session.message,
                    }
                )
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.info("Dropping mood contents for a closed socket: %s", exc)

        excluded = await asyncio.to_thread(storage.get_excluded_genre_ids, user_path)
        session = MoodSession(
            fetch,
            on_result=send_contents,
            excluded_genre_ids=excluded,
            delay=settings.debounce_ms / 1000,
            timeout=settings.fetch_timeout,
        )

        async def send_mood(classification):
            await websocket.send_json(
                {"type": "mood", **classification_payload(session.position, classification)}
            )

        try:
            start = await asyncio.to_thread(storage.get_mood_position, user_path)
            await send_mood(session.pointer_moved(start.x, start.y))
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    await websocket.send_json(
                        {"type": "error", "message": "Messages must be JSON objects"}
                    )
                    continue
                kind = message.get("type") if isinstance(message, dict) else None
                if kind == "move":
                    try:
                        classification = session.pointer_moved(
                            message.get("x", compass.CENTER[0]),
                            message.get("y", compass.CENTER[1]),
                        )
                    except (TypeError, ValueError):
                        await websocket.send_json(
                            {"type": "error", "message": "x and y must be numbers"}
                        )
                        continue
                elif kind == "reset":
                    classification = session.reset()
                else:
                    await websocket.send_json(
                        {"type": "error", "message": f"Unknown message type: {kind}"}
                    )
                    continue
                await send_mood(classification)
        except WebSocketDisconnect:
            logger.info("Mood socket disconnected")
        finally:
            session.close()
            await asyncio.to_thread(
                storage.save_mood_position, session.position.x, session.position.y, user_path
            )


app = create_app()

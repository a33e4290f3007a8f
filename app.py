import streamlit as st

import compass
import recommender
import storage
import tmdb_client
from config import settings


st.set_page_config(page_title="Mood Compass", page_icon="🧭", layout="centered")


def _secret(name):
    try:
        return st.secrets.get(name)
    except FileNotFoundError:
        return None


TMDB_API_KEY = _secret("TMDB_API_KEY") or settings.tmdb_api_key
LANGUAGE = settings.tmdb_language
USER_PATH = settings.user_data_path
RESULT_LIMIT = 12

st.title("🧭 Mood Compass")
st.caption("Navigate the ocean of cinema by how you feel right now.")

if not TMDB_API_KEY:
    st.error("TMDB API key is missing. Add TMDB_API_KEY to Streamlit secrets or .env.")
    st.stop()


@st.cache_data(show_spinner=False, ttl=3600)
def cached_genre_map(api_key, language):
    return tmdb_client.get_genre_map(api_key, language)


@st.cache_data(show_spinner=False, ttl=1800)
def cached_discover(api_key, language, params):
    return tmdb_client.discover_results(api_key, language, params)


@st.cache_data(show_spinner=False, ttl=1800)
def cached_trailer(api_key, movie_id, language):
    return tmdb_client.get_trailer_url(api_key, movie_id, language)


user = storage.load_user(USER_PATH)
start = storage.get_mood_position(USER_PATH)
st.session_state.setdefault("pointer_x", start.x)
st.session_state.setdefault("pointer_y", start.y)
st.session_state.setdefault("contents", [])
st.session_state.setdefault("loaded_once", False)


def reset_pointer():
    st.session_state.pointer_x = compass.CENTER[0]
    st.session_state.pointer_y = compass.CENTER[1]


with st.sidebar:
    st.header("Preferences")
    try:
        genre_map = cached_genre_map(TMDB_API_KEY, LANGUAGE)
    except RuntimeError:
        genre_map = {"name_to_id": {}, "id_to_name": {}}
        st.warning("Could not load genres from TMDB.")
    excluded_now = storage.get_excluded_genre_ids(USER_PATH)
    id_to_name = genre_map["id_to_name"]
    excluded_names = st.multiselect(
        "Never show me",
        sorted(genre_map["name_to_id"]),
        default=sorted(id_to_name[g] for g in excluded_now if g in id_to_name),
    )
    if st.button("Save preferences"):
        storage.update_preferences(
            {
                "excluded_genres": [
                    {"id": genre_map["name_to_id"][name], "name": name}
                    for name in excluded_names
                ]
            },
            USER_PATH,
        )
        st.toast("Preferences saved")
    hide_watched = st.toggle("Hide watched titles", value=True)


col_x, col_y = st.columns(2)
col_x.slider("East ↔ West", 0.0, 100.0, step=1.0, key="pointer_x")
col_y.slider("North ↔ South", 0.0, 100.0, step=1.0, key="pointer_y")
st.button("Reset to center", on_click=reset_pointer)

pointer = compass.clamp_position(st.session_state.pointer_x, st.session_state.pointer_y)
classification = compass.classify(compass.to_polar(pointer.x, pointer.y))
query = recommender.derive_params(classification, storage.get_excluded_genre_ids(USER_PATH))

markers = compass.sector_markers()
# Chart y grows upward, compass y grows downward.
chart = {
    "x": [m["x"] for m in markers] + [pointer.x],
    "y": [100 - m["y"] for m in markers] + [100 - pointer.y],
    "label": [m["name"] for m in markers] + ["You"],
}
st.scatter_chart(chart, x="x", y="y", color="label", height=360)

sector = classification.sector
st.subheader(sector["name"] if not classification.neutral else "Your mood")
st.write(compass.describe(classification))
st.info(compass.mood_tip(classification))

if pointer != start:
    storage.save_mood_position(pointer.x, pointer.y, USER_PATH)

params = recommender.build_discover_params(query)
try:
    results = cached_discover(TMDB_API_KEY, LANGUAGE, params)
    items = [recommender.to_content(item) for item in results]
    if hide_watched:
        items = recommender.filter_watched(items, user["watched_content"])
    if not items:
        raise tmdb_client.EmptyResultError("Everything here is already watched")
    st.session_state.contents = items[:RESULT_LIMIT]
    st.session_state.loaded_once = True
except tmdb_client.EmptyResultError:
    st.warning("No content found for this mood. Try adjusting the compass.")
    if not st.session_state.loaded_once:
        st.session_state.contents = []
except RuntimeError:
    st.error("Unable to load content, try again.")
    if not st.session_state.loaded_once:
        st.session_state.contents = []


if st.session_state.contents:
    st.markdown("### Content for your mood")
    cols = st.columns(3)
    for idx, item in enumerate(st.session_state.contents):
        with cols[idx % 3]:
            poster_url = tmdb_client.get_poster_url(item["poster_path"])
            if poster_url:
                st.image(poster_url, use_container_width=True)
            year = item["release_date"][:4]
            st.markdown(f"**{item['title']}** ({year or '—'})")
            st.caption(f"TMDB rating: {item['vote_average']:.1f}/10")
            with st.expander("Details"):
                st.write(item["overview"] or "No overview available.")
                trailer_url = cached_trailer(TMDB_API_KEY, item["id"], LANGUAGE)
                if trailer_url:
                    st.video(trailer_url)
                if st.button("Mark watched", key=f"watched-{item['id']}"):
                    storage.add_watched(item["id"], USER_PATH)
                    st.toast("Marked as watched")
                if st.button("Save for later", key=f"saved-{item['id']}"):
                    storage.add_saved(item["id"], USER_PATH)
                    st.toast("Saved")


with st.sidebar:
    with st.expander("Diagnostics"):
        polar = compass.to_polar(pointer.x, pointer.y)
        st.write(f"Angle: {polar.angle:.1f}°  Distance: {polar.distance:.2f}")
        st.write(f"Sector: {sector['name']}  Intensity: {classification.intensity}")
        st.write(f"Genres: {sorted(query.genre_ids) or 'any'}  Sort: {query.sort_key}")
        st.write(f"Saved titles: {len(user['saved_content'])}")

import atexit
import logging
from typing import Dict, List

import streamlit as st

# Local application imports
from core.browse import SORT_OPTIONS, filter_shows, paginate, sort_shows
from core.catalog import CatalogClient, episodes_for_season, is_valid_audio_url
from core.domain import EpisodeDescriptor
from core.drivers.mpv_driver import MpvBackend
from core.errors import CatalogError, PlaybackError
from core.repository import JsonStore
from core.services import PlaybackService
from core.settings import load_settings, save_settings, storage_path
from core.utils import format_clock, format_seconds_to_human_readable, progress_label

# === CONSTANTS & CONFIGURATION ===
PAGE_TITLE = "Podcue"
PAGE_ICON = "🎧"
RESUME_PREVIEW_COUNT = 3

st.set_page_config(
    page_title=PAGE_TITLE,
    page_icon=PAGE_ICON,
    layout="wide",
    initial_sidebar_state="expanded"
)


# === INITIALIZATION ===
def get_playback_service(settings: Dict) -> PlaybackService:
    """Builds the playback service once per browser session."""
    if 'playback' not in st.session_state:
        store = JsonStore(storage_path(settings))
        backend = MpvBackend(settings.get('player_executable', 'mpv'))
        playback = PlaybackService(store, backend)
        # mpv outlives reruns; stop it when the server exits.
        atexit.register(playback.close)
        st.session_state.playback = playback
    return st.session_state.playback


@st.cache_data(ttl=600, show_spinner=False)
def fetch_shows(base_url: str, timeout: float) -> List[Dict]:
    return CatalogClient(base_url, timeout=timeout).list_shows()


@st.cache_data(ttl=3600, show_spinner=False)
def fetch_genres(base_url: str, timeout: float) -> List[Dict]:
    return CatalogClient(base_url, timeout=timeout).list_genres()


@st.cache_data(ttl=600, show_spinner=False)
def fetch_show(base_url: str, show_id: str, timeout: float) -> Dict:
    return CatalogClient(base_url, timeout=timeout).get_show(show_id)


def play(playback: PlaybackService, episode: EpisodeDescriptor):
    if not is_valid_audio_url(episode.audio_url):
        st.toast(f"No playable audio for {episode.title}")
        return
    try:
        playback.play_episode(episode)
    except PlaybackError as e:
        st.toast(str(e))


# === COMPONENT RENDERERS ===
def render_sidebar(settings: Dict, playback: PlaybackService):
    with st.sidebar:
        st.markdown("### Library")

        if st.button("🧹 Clear recently played", use_container_width=True):
            playback.clear_recently_played()
            st.rerun()

        if st.session_state.get('confirm_reset'):
            if st.button("✓ Confirm reset", type="primary", use_container_width=True):
                playback.reset_history()
                del st.session_state['confirm_reset']
                st.rerun()
        elif st.button("↺ Reset history", use_container_width=True):
            st.session_state['confirm_reset'] = True
            st.rerun()

        st.markdown("<br>", unsafe_allow_html=True)

        with st.expander("⚙️ Preferences"):
            exe = st.text_input("mpv path", value=settings['player_executable'])
            catalog_url = st.text_input("Catalog URL", value=settings['catalog_url'])
            skip = st.number_input("Skip seconds", min_value=5, max_value=120, value=int(settings['skip_seconds']))
            if st.button("Save", use_container_width=True):
                settings['player_executable'] = exe
                settings['catalog_url'] = catalog_url
                settings['skip_seconds'] = int(skip)
                save_settings(settings)
                st.rerun()

        render_resume_playlist(playback)


def render_resume_playlist(playback: PlaybackService):
    st.markdown("### Resume Playlist")
    recent = playback.recently_played()
    if not recent:
        st.caption("No recent episodes. Start listening to see your resume playlist.")
        return

    show_all = st.toggle(f"View all {len(recent)} episodes", value=False) if len(recent) > RESUME_PREVIEW_COUNT else True
    for episode in recent if show_all else recent[:RESUME_PREVIEW_COUNT]:
        record = playback.get_progress(episode.episode_id)
        label = f"{episode.title} · S{episode.season} E{episode.episode}"
        if st.button(label, key=f"recent_{episode.episode_id}", use_container_width=True):
            play(playback, episode)
            st.rerun()
        if record is not None and record.duration:
            st.progress(record.fraction, text=progress_label(record.fraction, record.completed))


def render_episode_row(playback: PlaybackService, episode: EpisodeDescriptor, section: str):
    state = playback.snapshot()
    is_current = state.current_episode is not None and state.current_episode.episode_id == episode.episode_id
    record = playback.get_progress(episode.episode_id)

    col_info, col_play, col_fav = st.columns([0.76, 0.12, 0.12], gap="small")
    with col_info:
        recent_marker = " 🕘" if episode.episode_id in playback.recent else ""
        st.markdown(f"**E{episode.episode} · {episode.title}**{recent_marker}")
        if record is not None and record.duration:
            left = format_seconds_to_human_readable(record.duration - record.current_time)
            st.caption("Finished" if record.completed else f"{left} left in episode")
    with col_play:
        icon = "⏸" if is_current and state.is_playing else "▶"
        if st.button(icon, key=f"{section}_play_{episode.episode_id}", use_container_width=True):
            play(playback, episode)
            st.rerun()
    with col_fav:
        starred = playback.favorites.is_favorite(episode.episode_id)
        if st.button("★" if starred else "☆", key=f"{section}_fav_{episode.episode_id}", use_container_width=True):
            playback.favorites.toggle(episode)
            st.rerun()


def render_show(settings: Dict, playback: PlaybackService, show_id: str):
    try:
        show = fetch_show(settings["catalog_url"], show_id, float(settings["catalog_timeout"]))
    except CatalogError as e:
        st.error(f"Error loading seasons: {e}")
        return

    seasons = show.get("seasons") or []
    st.markdown(f"## {show.get('title', 'Untitled show')}")
    if not seasons:
        st.info("This show has no seasons yet.")
        return

    labels = [f"{s.get('title') or 'Season ' + str(s.get('season'))} ({len(s.get('episodes') or [])} episodes)" for s in seasons]
    index = st.selectbox("Season", range(len(seasons)), format_func=lambda i: labels[i])
    episodes = episodes_for_season(show, seasons[index])
    finished = set(playback.progress.completed_ids())
    st.caption(f"{sum(e.episode_id in finished for e in episodes)} of {len(episodes)} episodes finished")
    for episode in episodes:
        render_episode_row(playback, episode, "browse")


def render_browse(settings: Dict, playback: PlaybackService):
    base_url, timeout = settings["catalog_url"], float(settings["catalog_timeout"])
    try:
        shows = fetch_shows(base_url, timeout)
    except CatalogError as e:
        st.error(str(e))
        return

    try:
        genres = {int(g["id"]): g.get("title") or f"Genre {g['id']}" for g in fetch_genres(base_url, timeout)}
    except (CatalogError, KeyError, ValueError, TypeError) as e:
        st.caption(f"Genres unavailable: {e}")
        genres = {}

    col_search, col_genre, col_sort = st.columns([0.5, 0.25, 0.25])
    term = col_search.text_input("Search shows", placeholder="Search by title...")
    genre_id = col_genre.selectbox("Genre", [None] + list(genres), format_func=lambda g: "All genres" if g is None else genres[g])
    order = col_sort.selectbox("Sort by", list(SORT_OPTIONS), format_func=SORT_OPTIONS.get, key="browse_sort")

    matches = sort_shows(filter_shows(shows, term, genre_id), order)
    if not matches:
        st.info("No shows match your search.")
        return

    total_pages = paginate(matches, 1)[1]
    if st.session_state.get('browse_page', 1) > total_pages:
        # A narrower search may leave fewer pages than the one last shown.
        st.session_state['browse_page'] = 1
    page = st.number_input("Page", min_value=1, max_value=total_pages, step=1, key='browse_page')
    page_items, _, _ = paginate(matches, int(page))
    st.caption(f"{len(matches)} shows · page {int(page)} of {total_pages}")

    choice = st.selectbox("Show", range(len(page_items)), format_func=lambda i: page_items[i].get('title', 'Untitled'))
    render_show(settings, playback, str(page_items[choice]['id']))


def render_favorites(playback: PlaybackService):
    term = st.text_input("Search favourites", placeholder="Filter by episode or show...")
    sort_by = st.radio("Sort by", ["added", "title", "show"], horizontal=True, key="favs_sort")
    # Newest first for "added", alphabetical otherwise.
    entries = playback.favorites.search(term, sort_by=sort_by, descending=sort_by == "added")
    if not entries:
        st.info("No favourites yet.")
    for entry in entries:
        render_episode_row(playback, entry.descriptor, "favs")


def render_now_playing(settings: Dict, playback: PlaybackService):
    state = playback.snapshot()
    episode = state.current_episode
    if episode is None:
        return

    st.divider()
    col_art, col_body = st.columns([0.12, 0.88])
    with col_art:
        if episode.show_image:
            st.image(episode.show_image)
    with col_body:
        st.markdown(f"**{episode.title}** · {episode.show_title} · S{episode.season} E{episode.episode}")
        if state.last_error:
            st.warning(state.last_error)
        fraction = state.current_time / state.duration if state.duration else 0.0
        st.progress(min(fraction, 1.0), text=f"{format_clock(state.current_time)} / {format_clock(state.duration)}")

        skip = int(settings['skip_seconds'])
        c_back, c_play, c_fwd, c_stop, c_rep, c_shuf = st.columns(6)
        if c_back.button(f"⏪ {skip}", use_container_width=True):
            playback.skip_backward(skip)
        if c_play.button("⏸" if state.is_playing else "▶", key="np_toggle", use_container_width=True):
            try:
                playback.toggle_play_pause()
            except PlaybackError as e:
                st.toast(str(e))
        if c_fwd.button(f"{skip} ⏩", use_container_width=True):
            playback.skip_forward(skip)
        if c_stop.button("⏹", use_container_width=True):
            playback.stop_playback()
        if c_rep.button("🔁 on" if state.is_repeat_active else "🔁", use_container_width=True):
            playback.toggle_repeat()
        if c_shuf.button("🔀 on" if state.is_shuffle_active else "🔀", use_container_width=True):
            playback.toggle_shuffle()

        volume = st.slider("Volume", 0, 100, value=state.volume, key="np_volume")
        if volume != state.volume:
            playback.set_volume(volume)


@st.fragment(run_every=1.0)
def transport_ticker(settings: Dict, playback: PlaybackService):
    playback.pump()
    render_now_playing(settings, playback)


# === MAIN ENTRY POINT ===
def main():
    settings = load_settings()
    logging.basicConfig(level=getattr(logging, str(settings['log_level']).upper(), logging.INFO))
    playback = get_playback_service(settings)

    render_sidebar(settings, playback)

    st.markdown(f"# {PAGE_TITLE}")
    tab_browse, tab_favs = st.tabs(["Browse", "Favourites"])

    with tab_browse:
        render_browse(settings, playback)

    with tab_favs:
        render_favorites(playback)

    transport_ticker(settings, playback)


if __name__ == "__main__":
    main()

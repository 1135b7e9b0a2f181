from flask import Flask, request, jsonify, redirect, Response
import math
import logging
from typing import Optional

import requests

from config_singalong import load_config
from errors import (
    AuthError,
    ConfigError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from lyrics_parser import lines_to_json
from lyrics_providers import LrcLibClient, SpotifyLyricsClient, lrclib_record_to_lines
from preferences import get_lyrics_mode, set_lyrics_mode
from spotify_auth import TokenManager
from spotify_player import SpotifyPlayer
from token_store import JsonFileTokenStore

app = Flask(__name__)

LOGIN_PATH = '/login'


# --- Wiring (tests replace these attributes on app) ---

def _config() -> dict:
    cfg = getattr(app, '_singalong_config', None)
    if cfg is None:
        cfg = load_config()
        app._singalong_config = cfg
    return cfg


def _http_session() -> requests.Session:
    session = getattr(app, '_http_session', None)
    if session is None:
        session = requests.Session()
        app._http_session = session
    return session


def _token_manager() -> TokenManager:
    manager = getattr(app, '_token_manager', None)
    if manager is None:
        manager = TokenManager(JsonFileTokenStore(), _config(), session=_http_session())
        app._token_manager = manager
    return manager


def _player() -> SpotifyPlayer:
    return SpotifyPlayer(_token_manager(), session=_http_session(), timeout=_config().get('http_timeout', 15))


def _fraction_scale() -> int:
    return 10 if _config().get('lyrics_hundredths_as_centiseconds') else 1


# --- Error mapping ---

@app.errorhandler(AuthError)
def handle_auth_error(e):
    logging.info("Auth required: %s", e)
    return jsonify({'error': str(e), 'login_url': LOGIN_PATH}), 401


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({'error': str(e)}), 404


@app.errorhandler(UpstreamError)
def handle_upstream_error(e):
    return jsonify({'error': str(e), 'status': e.status_code}), 502


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(ConfigError)
def handle_config_error(e):
    logging.warning("Configuration error: %s", e)
    return jsonify({'error': str(e)}), 503


# --- Session / OAuth ---

@app.route('/')
def index():
    """Send logged-out users to Spotify login, otherwise report session state."""
    if not _token_manager().is_logged_in():
        return redirect(LOGIN_PATH, code=307)
    return jsonify({'logged_in': True, 'lyrics_mode': get_lyrics_mode()})


@app.route('/login')
def login():
    return redirect(_token_manager().begin_authorization())


@app.route('/auth')
def auth_callback():
    """Spotify redirects here with ?code=... after the user approves."""
    try:
        _token_manager().complete_authorization(request.url)
    except AuthError as e:
        return jsonify({'error': str(e), 'login_url': LOGIN_PATH}), 400
    return redirect('/')


@app.route('/logout', methods=['POST'])
def logout():
    _token_manager().logout()
    return jsonify({'ok': True})


@app.route('/api/session', methods=['GET'])
def get_session():
    return jsonify({'logged_in': _token_manager().is_logged_in()})


# --- Playback ---

@app.route('/api/player', methods=['GET'])
def get_playback_state():
    state = _player().get_playback_state()
    if state is None:
        return Response(status=204)
    return jsonify(state)


@app.route('/api/player/play', methods=['PUT'])
def start_playback():
    _player().start_playback()
    return jsonify({'ok': True})


@app.route('/api/player/pause', methods=['PUT'])
def pause_playback():
    _player().pause_playback()
    return jsonify({'ok': True})


@app.route('/api/player/next', methods=['POST'])
def skip_to_next():
    _player().skip_to_next()
    return jsonify({'ok': True})


@app.route('/api/player/previous', methods=['POST'])
def skip_to_previous():
    _player().skip_to_previous()
    return jsonify({'ok': True})


@app.route('/api/tracks/<track_id>/saved', methods=['GET'])
def get_track_saved(track_id: str):
    return jsonify({'saved': _player().is_track_saved(track_id)})


@app.route('/api/tracks/<track_id>/saved', methods=['PUT'])
def like_track(track_id: str):
    return jsonify({'saved': _player().like_track(track_id)})


@app.route('/api/tracks/<track_id>/saved', methods=['DELETE'])
def unlike_track(track_id: str):
    _player().unlike_track(track_id)
    return jsonify({'saved': False})


# --- Lyrics ---

def _parse_lyrics_query(args) -> dict:
    """All four parameters are required; duration must be a finite number (seconds)."""
    params = {}
    for name in ('track_name', 'artist_name', 'album_name', 'duration'):
        value = args.get(name)
        if value is None:
            raise ValidationError('Invalid request')
        params[name] = value
    try:
        duration = float(params['duration'])
    except ValueError:
        raise ValidationError('Invalid request')
    if not math.isfinite(duration):
        raise ValidationError('Invalid request')
    params['duration'] = duration
    return params


@app.route('/api/lyrics', methods=['GET'])
def get_song_lyrics():
    """Synced lyrics from LRCLIB: one {startTimeMs, words} or null per source line."""
    params = _parse_lyrics_query(request.args)
    cfg = _config()
    client = LrcLibClient(cfg.get('lrclib_base_url') or 'https://lrclib.net',
                          session=_http_session(), timeout=cfg.get('http_timeout', 15))
    record = client.find_lyrics(
        params['track_name'],
        params['artist_name'],
        params['album_name'],
        params['duration'],
        search_fallback=bool(cfg.get('lrclib_search_fallback', True)),
        threshold=cfg.get('lrclib_match_threshold', 80),
    )
    if record is None:
        raise NotFoundError('Lyrics not found')
    return jsonify(lines_to_json(lrclib_record_to_lines(record, _fraction_scale())))


@app.route('/api/spotify/lyrics/', methods=['GET'])
@app.route('/api/spotify/lyrics/<track_id>', methods=['GET'])
def get_spotify_lyrics(track_id: Optional[str] = None):
    """Lyrics from Spotify's own backend (needs the sp_dc cookie)."""
    if not track_id or not track_id.strip():
        raise ValidationError('Track ID is required')
    cfg = _config()
    client = SpotifyLyricsClient(cfg.get('sp_dc', ''), session=_http_session(),
                                 timeout=cfg.get('http_timeout', 15))
    lines = client.get_lyrics(track_id.strip())
    if lines is None:
        raise NotFoundError('Lyrics not found')
    return jsonify(lines_to_json(lines))


# --- Preferences ---

@app.route('/api/preferences', methods=['GET'])
def get_preferences():
    return jsonify({'lyrics_mode': get_lyrics_mode()})


@app.route('/api/preferences', methods=['POST'])
def save_preferences():
    data = request.get_json(silent=True) or {}
    if 'lyrics_mode' in data:
        set_lyrics_mode(data['lyrics_mode'])
    return jsonify({'lyrics_mode': get_lyrics_mode()})


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')
    app.run(debug=True, port=int(_config().get('server_port', 5002)), host='127.0.0.1',
            threaded=True, use_reloader=False)

#!/usr/bin/env python3
"""
Flask Backend Server for the Vent Chase browser client.
Owns one GameSession per client, advances them in real time and pushes
state plus the discrete event stream over Socket.IO.
"""

import sys
import os
import time
import logging
import threading
from flask import Flask, jsonify, request
from flask_socketio import SocketIO, emit, join_room
from flask_cors import CORS

# Add src directory to Python path
src_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'src')
sys.path.insert(0, src_path)

from core.logger import configure_console_logging
from engine import GameSession
from entities.grid_map import MapFormatError
from systems.persistence import ProgressStore

logger = logging.getLogger(__name__)

FRAME_SECONDS = 1 / 60

app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('VENT_CHASE_SECRET_KEY', 'vent-chase-dev-key')
CORS(app)
socketio = SocketIO(app, cors_allowed_origins="*")

# Sessions by id, guarded by one lock shared with the frame loop.
game_sessions = {}
sessions_lock = threading.Lock()
progress_store = ProgressStore()
_loop_started = False


def _session_id(data):
    """Session ids are strings on the server whatever JSON type the client sent."""
    return str(data.get('session_id', 'default'))


def _get_session(session_id):
    return game_sessions.get(str(session_id))


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


@app.route('/')
def index():
    """Describe the API for clients that land here."""
    return jsonify({
        'name': 'vent-chase',
        'endpoints': [
            'POST /api/new_game',
            'GET /api/game_state/<session_id>',
            'POST /api/move',
            'POST /api/target',
            'POST /api/pause',
            'POST /api/resume',
        ],
    })


@app.route('/api/new_game', methods=['POST'])
def new_game():
    """Start a new game"""
    data = _json_body() or {}
    session_id = _session_id(data)
    level = data.get('level', progress_store.progress.level)
    seed = data.get('seed')

    try:
        game = GameSession(level=level, seed=seed, show_tips=not progress_store.progress.once_played)
    except MapFormatError as e:
        logger.error("Could not build session %s: %s", session_id, e)
        return jsonify({'error': str(e)}), 500

    with sessions_lock:
        old = game_sessions.get(session_id)
        if old is not None:
            old.scheduler.cancel_all()
        progress_store.bind(game.events)
        game.start()
        game_sessions[session_id] = game

    logger.info("New game %s at level %d", session_id, game.settings.level)
    return jsonify({
        'success': True,
        'session_id': session_id,
        'attempts': progress_store.progress.attempts,
        'game_state': game.snapshot()
    })


@app.route('/api/game_state/<session_id>', methods=['GET'])
def get_game_state(session_id):
    """Get current game state"""
    with sessions_lock:
        game = _get_session(session_id)
        if game is None:
            return jsonify({'error': 'Session not found'}), 404
        return jsonify(game.snapshot())


@app.route('/api/move', methods=['POST'])
def move():
    """Directional step: {session_id, dx, dy}"""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'JSON body required'}), 400
    try:
        dx = int(data['dx'])
        dy = int(data['dy'])
    except (KeyError, TypeError, ValueError):
        return jsonify({'error': 'dx and dy must be integers'}), 400

    with sessions_lock:
        game = _get_session(_session_id(data))
        if game is None:
            return jsonify({'error': 'Session not found'}), 404
        accepted = game.submit_directional_move(dx, dy)
        return jsonify({'success': True, 'accepted': accepted, 'game_state': game.snapshot()})


@app.route('/api/target', methods=['POST'])
def target():
    """Tap-to-move: {session_id, row, col}"""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'JSON body required'}), 400
    try:
        coord = (int(data['row']), int(data['col']))
    except (KeyError, TypeError, ValueError):
        return jsonify({'error': 'row and col must be integers'}), 400

    with sessions_lock:
        game = _get_session(_session_id(data))
        if game is None:
            return jsonify({'error': 'Session not found'}), 404
        accepted = game.submit_target_tile(coord)
        return jsonify({'success': True, 'accepted': accepted, 'game_state': game.snapshot()})


def _toggle_pause(paused):
    data = _json_body() or {}
    with sessions_lock:
        game = _get_session(_session_id(data))
        if game is None:
            return jsonify({'error': 'Session not found'}), 404
        if paused:
            game.pause()
        else:
            game.resume()
        return jsonify({'success': True, 'game_state': game.snapshot()})


@app.route('/api/pause', methods=['POST'])
def pause():
    return _toggle_pause(True)


@app.route('/api/resume', methods=['POST'])
def resume():
    return _toggle_pause(False)


def _step_sessions(elapsed_ms):
    """Advance every session and collect (id, snapshot, events) to push.

    A finished session is dropped once its final state and events have
    been collected.
    """
    updates = []
    with sessions_lock:
        for session_id, game in list(game_sessions.items()):
            game.advance(elapsed_ms)
            updates.append((session_id, game.snapshot(), game.drain_events()))
            if game.is_over:
                del game_sessions[session_id]
                logger.info("Session %s finished: %s", session_id, game.terminal_state.value)
    return updates


def _frame_loop():
    """Advance every session by wall-clock time and push updates to its room."""
    last = time.monotonic()
    while True:
        socketio.sleep(FRAME_SECONDS)
        current = time.monotonic()
        elapsed_ms = (current - last) * 1000
        last = current

        for session_id, state, events in _step_sessions(elapsed_ms):
            socketio.emit('state', state, to=session_id)
            if events:
                socketio.emit('game_events', events, to=session_id)


@socketio.on('connect')
def handle_connect():
    """Handle client connection"""
    logger.info('Client connected')
    emit('connected', {'data': 'Connected to the Vent Chase server'})


@socketio.on('join')
def handle_join(data):
    """Subscribe this socket to a session's updates and make sure frames run."""
    global _loop_started
    session_id = _session_id(data or {})
    join_room(session_id)
    if not _loop_started:
        _loop_started = True
        socketio.start_background_task(_frame_loop)
    emit('joined', {'session_id': session_id})


@socketio.on('disconnect')
def handle_disconnect():
    """Handle client disconnection"""
    logger.info('Client disconnected')


if __name__ == '__main__':
    configure_console_logging()
    host = os.environ.get('VENT_CHASE_HOST', '0.0.0.0')
    port = int(os.environ.get('VENT_CHASE_PORT', '5000'))
    logger.info("Starting Vent Chase server on http://%s:%d", host, port)
    socketio.run(app, host=host, port=port, debug=False, allow_unsafe_werkzeug=True)

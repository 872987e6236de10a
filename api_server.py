#!/usr/bin/env python3
"""
Pixels Image API Server
Each pipeline step has its own endpoint; edits live in in-memory sessions.
Uploads are held as in-process object URLs and never written to disk.
"""

import os
import asyncio
import logging
import uuid
from io import BytesIO
from typing import Dict, Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from pixelsimage.exceptions import DecodeError, PixelsImageError, UnknownFilterError
from pixelsimage.models.color_adjustment import ColorAdjustment
from pixelsimage.pipeline.edit_session import EditSession
from pixelsimage.repositories.blob_repository import BlobStore
from pixelsimage.repositories.filter_repository import default_registry
from pixelsimage.repositories.image_repository import ImageRepository
from pixelsimage.repositories.surface_repository import SurfaceRepository
from pixelsimage.utils.mimetype import infer_mimetype

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "100")) * 1024 * 1024
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "5000"))
FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT_SECONDS", "10"))
# Server paths, file: and blob: URLs are never opened on behalf of a client.
ALLOWED_URL_SCHEMES = {"http", "https", "data"}

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Shared collaborators
blob_store = BlobStore()
image_repository = ImageRepository(blob_store=blob_store, timeout=FETCH_TIMEOUT)
surface_repository = SurfaceRepository()
filter_registry = default_registry()

logger = logging.getLogger(__name__)

# Session storage for edit state
sessions: Dict[str, EditSession] = {}


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def allowed_url(url: str) -> bool:
    """Check that a client-supplied url points off the server."""
    return isinstance(url, str) and urlparse(url).scheme.lower() in ALLOWED_URL_SCHEMES


def get_session(data: dict) -> Optional[EditSession]:
    session_id = (data or {}).get('session_id')
    if not session_id:
        return None
    return sessions.get(session_id)


def session_summary(session_id: str, session: EditSession) -> dict:
    return {
        'session_id': session_id,
        'width': session.surface.width,
        'height': session.surface.height,
        'mimetype': session.mimetype,
    }


def open_session(locator: str, mimetype: Optional[str]) -> EditSession:
    return asyncio.run(EditSession.open(
        locator,
        mimetype,
        registry=filter_registry,
        image_repository=image_repository,
        surface_repository=surface_repository,
    ))


@app.route('/api/load', methods=['POST'])
def load_image():
    """Load an uploaded file or a URL into a new session."""
    data = request.get_json(silent=True) or request.form
    mimetype = data.get('mimetype') or None
    try:
        if 'image' in request.files:
            file = request.files['image']
            if file.filename == '':
                return jsonify({'success': False, 'message': 'No file selected'}), 400
            filename = secure_filename(file.filename)
            if not allowed_file(filename):
                return jsonify({'success': False, 'message': f'File type not allowed: {filename}'}), 400

            mimetype = mimetype or infer_mimetype(filename)
            object_url = blob_store.create_object_url(file.read())
            try:
                session = open_session(object_url, mimetype)
            finally:
                blob_store.revoke_object_url(object_url)
        elif data.get('url'):
            url = data['url']
            if not allowed_url(url):
                logger.warning(f"Rejected load of non-remote url: {str(url)[:80]}")
                return jsonify({'success': False, 'message': 'Only http(s) and data URLs can be loaded'}), 400
            session = open_session(url, mimetype)
        else:
            return jsonify({'success': False, 'message': 'No image or url provided'}), 400

        session_id = str(uuid.uuid4())
        sessions[session_id] = session
        logger.info(f"Session {session_id} loaded {session.source.width}x{session.source.height} image")

        return jsonify({'success': True, **session_summary(session_id, session)})

    except DecodeError as e:
        logger.warning(f"Image decode error: {e}")
        return jsonify({'success': False, 'message': str(e)}), 422
    except (ValueError, PixelsImageError) as e:
        logger.error(f"Image loading error: {e}")
        return jsonify({'success': False, 'message': str(e)}), 400
    except Exception as e:
        logger.error(f"Image loading error: {e}")
        return jsonify({'success': False, 'message': f'Error loading image: {str(e)}'}), 500


@app.route('/api/adjust', methods=['POST'])
def adjust_colors():
    """Apply brightness/contrast/saturation to a session."""
    data = request.get_json(silent=True) or {}
    session = get_session(data)
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400
    try:
        colors = ColorAdjustment.from_mapping(data)
        session.adjust_colors(colors)
        return jsonify({'success': True, 'message': 'Colors adjusted'})
    except ValueError as e:
        return jsonify({'success': False, 'message': f'Invalid adjustment: {str(e)}'}), 400
    except Exception as e:
        logger.error(f"Color adjustment error: {e}")
        return jsonify({'success': False, 'message': f'Error adjusting colors: {str(e)}'}), 500


@app.route('/api/filters', methods=['GET'])
def list_filters():
    """List the registered filter tokens."""
    return jsonify({'filters': sorted(filter_registry)})


@app.route('/api/filters', methods=['POST'])
def apply_filters():
    """Run a chain of filters on a session."""
    data = request.get_json(silent=True) or {}
    session = get_session(data)
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400
    filters = data.get('filters')
    if not filters:
        return jsonify({'success': False, 'message': 'No filters provided'}), 400
    try:
        session.apply_filters(filters)
        return jsonify({'success': True, 'message': 'Filters applied'})
    except UnknownFilterError as e:
        # Filters before the unknown one stay applied.
        return jsonify({'success': False, 'message': str(e), 'filter': e.token}), 400
    except Exception as e:
        logger.error(f"Filter error: {e}")
        return jsonify({'success': False, 'message': f'Error applying filters: {str(e)}'}), 500


@app.route('/api/flip', methods=['POST'])
def flip():
    """Mirror a session's surface horizontally or vertically."""
    data = request.get_json(silent=True) or {}
    session = get_session(data)
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400
    axis = data.get('axis', 'horizontal')
    if axis == 'horizontal':
        session.flip_horizontal()
    elif axis == 'vertical':
        session.flip_vertical()
    else:
        return jsonify({'success': False, 'message': f'Unknown axis: {axis}'}), 400
    return jsonify({'success': True, 'message': f'Flipped {axis}ly'})


@app.route('/api/reset', methods=['POST'])
def reset():
    """Discard every edit of a session."""
    session = get_session(request.get_json(silent=True) or {})
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400
    session.reset()
    return jsonify({'success': True, 'message': 'Session reset'})


@app.route('/api/export', methods=['POST'])
def export():
    """Export a session as a data URL (JSON) or as raw encoded bytes."""
    data = request.get_json(silent=True) or {}
    session = get_session(data)
    if session is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 400

    export_object = session.export()
    fmt = data.get('format', 'data_url')
    try:
        if fmt == 'data_url':
            return jsonify({
                'success': True,
                'mimetype': export_object.get_inferred_mimetype(),
                'data_url': export_object.get_data_url(),
            })
        if fmt == 'blob':
            blob = asyncio.run(export_object.get_blob())
            if blob is None:
                return jsonify({'success': False, 'message': 'Nothing to export'}), 400
            return send_file(BytesIO(blob), mimetype=export_object.get_inferred_mimetype())
        return jsonify({'success': False, 'message': f'Unknown format: {fmt}'}), 400
    except Exception as e:
        logger.error(f"Export error: {e}")
        return jsonify({'success': False, 'message': f'Error exporting image: {str(e)}'}), 500


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Pixels Image API is running',
        'active_sessions': len(sessions)
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Drop a session and free its memory."""
    session_id = (request.get_json(silent=True) or {}).get('session_id')
    if session_id and session_id in sessions:
        del sessions[session_id]
        return jsonify({'success': True, 'message': 'Session cleared'})
    return jsonify({'success': False, 'message': 'Session not found'})


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(400)
def bad_request(e):
    """Handle bad request error."""
    return jsonify({'error': 'Bad request'}), 400


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    print("🚀 Starting Pixels Image API Server...")
    print(f"🔧 Max upload size: {MAX_CONTENT_LENGTH // (1024 * 1024)}MB")
    print(f"🎛️  Filters: {', '.join(sorted(filter_registry))}")
    print("🌐 CORS enabled for frontend communication")
    print("📋 Pipeline Steps:")
    print("   1. /api/load")
    print("   2. /api/adjust, /api/filters, /api/flip")
    print("   3. /api/export (or /api/reset)")
    print("=" * 60)

    app.run(host=API_HOST, port=API_PORT, debug=False, threaded=False)


if __name__ == '__main__':
    main()

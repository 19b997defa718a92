"""HTTP routes for the ClipMark library."""

import json

from flask import Blueprint, Response, current_app, jsonify, request

from clipmark.context import AppContext
from clipmark.errors import ImportFormatError, NotFoundError, ValidationError
from clipmark.pagination import PaginationCursor


bp = Blueprint("api", __name__)


def _ctx() -> AppContext:
    return current_app.config["CLIPMARK"]


def _json_object() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def _page_of(items: list, page: int) -> dict:
    cursor = PaginationCursor(_ctx().store.preferences.items_per_page)
    cursor.current_page = max(1, page)
    visible = cursor.visible(items)
    return {
        "items": [item.to_dict() for item in visible],
        "page": cursor.current_page,
        "total": len(items),
        "has_more": cursor.has_more(len(items), len(visible)),
    }


@bp.errorhandler(ValidationError)
@bp.errorhandler(ImportFormatError)
def bad_request(error):
    return jsonify({"error": str(error)}), 400


@bp.errorhandler(NotFoundError)
def not_found(error):
    return jsonify({"error": str(error)}), 404


@bp.route("/")
def index():
    store = _ctx().store
    return jsonify({
        "name": "ClipMark",
        "user": store.current_user,
        "segments": len(store.segments),
        "playlists": len(store.playlists),
    })


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------

@bp.route("/api/segments", methods=["GET"])
def list_segments():
    page = request.args.get("page", 1, type=int)
    return jsonify(_page_of(_ctx().store.segments, page))


@bp.route("/api/segments", methods=["POST"])
def create_segment():
    data = _json_object()
    segment = _ctx().store.add_segment(
        data.get("url"), data.get("name"), data.get("start"), data.get("end")
    )
    return jsonify(segment.to_dict()), 201


@bp.route("/api/segments/<segment_id>", methods=["GET"])
def get_segment(segment_id: str):
    segment = _ctx().store.get_segment(segment_id)
    if segment is None:
        raise NotFoundError("segment", segment_id)
    return jsonify(segment.to_dict())


@bp.route("/api/segments/<segment_id>", methods=["PUT"])
def update_segment(segment_id: str):
    data = _json_object()
    segment = _ctx().store.update_segment(
        segment_id, data.get("url"), data.get("name"), data.get("start"), data.get("end")
    )
    return jsonify(segment.to_dict())


@bp.route("/api/segments/<segment_id>", methods=["DELETE"])
def delete_segment(segment_id: str):
    _ctx().store.delete_segment(segment_id)
    return "", 204


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

@bp.route("/api/playlists", methods=["GET"])
def list_playlists():
    page = request.args.get("page", 1, type=int)
    return jsonify(_page_of(_ctx().store.playlists, page))


@bp.route("/api/playlists", methods=["POST"])
def create_playlist():
    data = _json_object()
    playlist = _ctx().store.add_playlist(
        data.get("name"), data.get("segmentIds"), data.get("description", "")
    )
    return jsonify(playlist.to_dict()), 201


@bp.route("/api/playlists/<playlist_id>", methods=["GET"])
def get_playlist(playlist_id: str):
    store = _ctx().store
    playlist = store.get_playlist(playlist_id)
    if playlist is None:
        raise NotFoundError("playlist", playlist_id)
    data = playlist.to_dict()
    data["segments"] = [s.to_dict() for s in store.playlist_segments(playlist)]
    return jsonify(data)


@bp.route("/api/playlists/<playlist_id>", methods=["PUT"])
def update_playlist(playlist_id: str):
    data = _json_object()
    playlist = _ctx().store.update_playlist(
        playlist_id, data.get("name"), data.get("segmentIds"), data.get("description", "")
    )
    return jsonify(playlist.to_dict())


@bp.route("/api/playlists/<playlist_id>", methods=["DELETE"])
def delete_playlist(playlist_id: str):
    _ctx().store.delete_playlist(playlist_id)
    return "", 204


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------

@bp.route("/api/export")
def export():
    full = request.args.get("full", "0") in ("1", "true", "yes")
    snapshot = _ctx().store.export_snapshot(full=full)
    stamp = snapshot["backupDate" if full else "exportDate"][:10]
    return Response(
        json.dumps(snapshot, indent=2),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename=clipmark-backup-{stamp}.json"},
    )


@bp.route("/api/import", methods=["POST"])
def import_data():
    if "file" in request.files:
        raw = request.files["file"].read()
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportFormatError(f"Import file is not valid JSON: {e}") from e
    else:
        payload = request.get_json(silent=True)
        if payload is None:
            return jsonify({"error": "No file provided"}), 400

    ctx = _ctx()
    count = ctx.store.import_merge(payload)
    ctx.reset_cursors()
    return jsonify({"imported": count})


@bp.route("/api/clear", methods=["POST"])
def clear():
    ctx = _ctx()
    ctx.store.clear_all()
    ctx.reset_cursors()
    return jsonify({"status": "cleared"})


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

def _profile_json() -> dict:
    store = _ctx().store
    return {
        "user": store.current_user,
        "name": store.profile.name,
        "preferences": store.preferences.to_dict(),
    }


@bp.route("/api/profile", methods=["GET"])
def get_profile():
    return jsonify(_profile_json())


@bp.route("/api/profile", methods=["PUT"])
def update_profile():
    data = _json_object()
    ctx = _ctx()
    store = ctx.store
    if "user" in data:
        store.switch_user(data["user"])
    if "name" in data:
        store.rename_user(data["name"])
    if "darkMode" in data:
        store.set_dark_mode(bool(data["darkMode"]))
    if "itemsPerPage" in data:
        try:
            count = int(data["itemsPerPage"])
        except (TypeError, ValueError):
            raise ValidationError("items per page must be a number") from None
        store.set_items_per_page(count)
    ctx.reset_cursors()
    return jsonify(_profile_json())


# ---------------------------------------------------------------------------
# Deep links
# ---------------------------------------------------------------------------

@bp.route("/api/shared")
def shared():
    """Resolve a ``?segment=`` / ``?playlist=`` deep link to the item it names."""
    store = _ctx().store
    segment_id = request.args.get("segment")
    playlist_id = request.args.get("playlist")

    if segment_id:
        segment = store.get_segment(segment_id)
        if segment is None:
            raise NotFoundError("segment", segment_id)
        return jsonify({"type": "segment", "item": segment.to_dict()})
    if playlist_id:
        playlist = store.get_playlist(playlist_id)
        if playlist is None:
            raise NotFoundError("playlist", playlist_id)
        return jsonify({"type": "playlist", "item": playlist.to_dict()})
    return jsonify({"error": "No segment or playlist given"}), 400

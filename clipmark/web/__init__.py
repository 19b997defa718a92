"""Flask application factory for the ClipMark HTTP API."""

from pathlib import Path

from flask import Flask, jsonify

from clipmark.config import AppConfig
from clipmark.context import AppContext
from clipmark.storage import BlobStorage


def create_app(
    data_dir: Path | None = None,
    config: AppConfig | None = None,
    storage: BlobStorage | None = None,
) -> Flask:
    config = config or AppConfig()
    if data_dir is not None:
        config.data_dir = Path(data_dir)

    app = Flask(__name__)
    app.config["DATA_DIR"] = config.data_dir
    app.config["MAX_CONTENT_LENGTH"] = config.max_import_bytes
    app.config["CLIPMARK"] = AppContext(config, storage=storage).init()

    from clipmark.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return jsonify({"error": "File is too large for import"}), 413

    return app

import logging

from flask import Flask, jsonify

from .config import Config
from .extensions import db, cors, migrate


def _configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger("storefront")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)


def create_app(config_class=Config, overrides=None, compute_tax=None):
    """
    compute_tax: optional callable(context: dict) -> amount, consulted when the
    request carries no taxAmount.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)
    config_class.init_app(app)

    _configure_logging(app)

    # Init extensions
    db.init_app(app)
    cors.init_app(app, resources={r"/*": {"origins": app.config["CORS_ORIGINS"]}})
    migrate.init_app(app, db)

    if compute_tax is not None:
        app.extensions["storefront.tax"] = compute_tax

    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints
    from .checkout import bp as checkout_bp; app.register_blueprint(checkout_bp)

    from .cli import register_cli
    register_cli(app)

    @app.get("/")
    def health():
        return jsonify(ok=True, msg="API running")

    with app.app_context():
        from . import model  # noqa: F401
        db.create_all()

    logging.getLogger("storefront").debug("app created with blueprints %s", sorted(app.blueprints))
    return app

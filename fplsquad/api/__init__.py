"""Flask application factory."""

from flask import Flask


def create_app(manager=None) -> Flask:
    """Create and configure the Flask application.

    *manager* is the :class:`~fplsquad.season.manager.SquadManager` the
    routes use; when omitted one is built lazily on first request.
    """
    app = Flask(__name__)
    if manager is not None:
        app.extensions["squad_manager"] = manager

    from fplsquad.api.middleware import register_middleware
    register_middleware(app)

    from fplsquad.api.squad_bp import squad_bp
    from fplsquad.api.transfers_bp import transfers_bp
    from fplsquad.api.chips_bp import chips_bp
    from fplsquad.api.prices_bp import prices_bp

    app.register_blueprint(squad_bp, url_prefix="/api/squad")
    app.register_blueprint(transfers_bp, url_prefix="/api/transfers")
    app.register_blueprint(chips_bp, url_prefix="/api/chips")
    app.register_blueprint(prices_bp, url_prefix="/api/prices")

    return app

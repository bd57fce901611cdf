"""Web routes for stepup."""

from pathlib import Path

from flask import Blueprint, Flask, render_template, session

from stepup.web.host import SESSION_USER_KEY

# Get the directories relative to this package
_web_dir = Path(__file__).parent.parent
_templates_dir = _web_dir / "templates"

main_bp = Blueprint(
    "main",
    __name__,
    template_folder=str(_templates_dir),
)


@main_bp.route("/")
def index() -> str:
    """Render the landing page."""
    return render_template("index.html", user_id=session.get(SESSION_USER_KEY))


@main_bp.route("/health")
def health() -> dict[str, str]:
    """Health check endpoint (unauthenticated)."""
    return {"status": "healthy"}


def init_app(app: Flask) -> None:
    """Register blueprints with the Flask app."""
    from stepup.web.routes.flow import flow_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(flow_bp)

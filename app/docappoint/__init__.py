import logging

from flask import Flask, g, render_template, request
from dotenv import load_dotenv

from app.docappoint.config import load_config
from app.docappoint.db import init_db, teardown_db_session
from app.docappoint.errors import PageNotFound, error_context
from app.docappoint.security import init_csrf
from app.docappoint.routes import bp as routes_bp
from app.docappoint.auth import bp as users_bp, load_current_user
from app.docappoint.modules.client.routes import bp as client_bp
from app.docappoint.modules.admin.routes import bp as admin_bp
from app.docappoint.modules.doctor.routes import bp as doctor_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    init_csrf(app)
    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.context_processor
    def _inject_current_user() -> dict:
        return {"current_user": getattr(g, "current_user", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    app.register_blueprint(users_bp)
    app.register_blueprint(client_bp, url_prefix="/client")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(doctor_bp, url_prefix="/doctor")
    app.register_blueprint(routes_bp)

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        return _render_error(PageNotFound())

    @app.errorhandler(Exception)
    def _err_any(e):  # type: ignore[no-redef]
        return _render_error(e)

    def _render_error(err: BaseException):
        status, message = error_context(err)
        if status >= 500:
            app.logger.exception("Unhandled %s (request_id=%s)", status, getattr(g, "request_id", None), exc_info=err)
        elif status == 403:
            app.logger.warning(
                "Forbidden: path=%s missing_role=%s request_id=%s",
                request.path,
                getattr(g, "missing_role", None),
                getattr(g, "request_id", None),
            )
        return render_template("error.html", status_code=status, message=message, err=err), status

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app

"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with its collaborators, blueprints, middleware and
configuration.
"""
from __future__ import annotations
import ipaddress
import logging
from typing import Optional

from flask import Flask, abort, has_request_context, request
from werkzeug.middleware.proxy_fix import ProxyFix

from zeus.config import AppConfig, load_settings
from zeus.core.audit import configure_audit, safe_log_user_event
from zeus.core.store import (
    DEMO_ROLE_PERMISSIONS,
    MemoryPermissionResolver,
    MemoryUserStore,
    PermissionResolver,
    RemotePermissionResolver,
    RemoteUserStore,
    ServiceClient,
    UserStore,
    seed_demo_data,
)
from zeus.core.users import UserResourceHandler

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 64 * 1024
BODY_MIMETYPES = {"application/json", "application/x-www-form-urlencoded"}
DEFAULT_OPERATOR = "api"


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[UserStore] = None,
    resolver: Optional[PermissionResolver] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Settings to use; loaded from the environment when omitted
        store: User store to wire instead of the configured one
        resolver: Permission resolver to wire instead of the configured one
    """
    cfg = config or load_settings()
    _configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Parse trusted proxy networks
    trusted_proxy_networks = []
    for entry in cfg.trusted_proxy_list:
        try:
            trusted_proxy_networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("[flask_app] Ignoring malformed TRUSTED_PROXY_IPS entry %r", entry)
    app.config["TRUSTED_PROXY_NETWORKS"] = trusted_proxy_networks

    # Collaborators
    if store is None:
        store, default_resolver = _build_collaborators(cfg)
        resolver = resolver or default_resolver
    elif resolver is None:
        if not isinstance(store, MemoryUserStore):
            raise ValueError("a PermissionResolver must be supplied together with a custom UserStore")
        resolver = MemoryPermissionResolver(store, DEMO_ROLE_PERMISSIONS if cfg.demo_mode else None)

    configure_audit(cfg.audit_log_dir, cfg.audit_log_signing_key)

    from zeus.api import errors, health, users

    app.extensions[users.HANDLER_EXTENSION_KEY] = UserResourceHandler(
        store,
        resolver,
        lenient_edits=cfg.lenient_edits,
        list_default_limit=cfg.list_default_limit,
        list_max_limit=cfg.list_max_limit,
        audit_hook=_audit_request_event,
    )

    # Register blueprints
    app.register_blueprint(health.bp)
    app.register_blueprint(users.bp, url_prefix=users.USERS_PREFIX)

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware/before_request handlers
    _register_middleware(app, trusted_proxy_networks)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    logger.info("[flask_app] Mode=%s", mode_label)
    logger.info("[flask_app] User API registered at %s", users.USERS_PREFIX)
    if cfg.lenient_edits:
        logger.warning("[flask_app] LENIENT_EDITS active - edits that change nothing are acknowledged")

    return app


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("zeus").setLevel(level)


def _build_collaborators(cfg: AppConfig) -> tuple[UserStore, PermissionResolver]:
    """Remote user service when configured, otherwise the in-memory store."""
    if cfg.uses_remote_store:
        client = ServiceClient(cfg.user_service_url, cfg.user_service_token, cfg.user_service_timeout)
        logger.info("[flask_app] Using remote user service at %s", cfg.user_service_url)
        return RemoteUserStore(client), RemotePermissionResolver(client)

    store = MemoryUserStore()
    if cfg.demo_mode:
        seed_demo_data(store)
        logger.warning("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")
        return store, MemoryPermissionResolver(store, DEMO_ROLE_PERMISSIONS)
    return store, MemoryPermissionResolver(store)


def _audit_request_event(event_type: str, target: str, success: bool, details: dict) -> None:
    """Audit hook handed to the user handler; enriches events with request headers."""
    operator = DEFAULT_OPERATOR
    correlation_id = None
    if has_request_context():
        operator = request.headers.get("X-Operator", "").strip() or DEFAULT_OPERATOR
        correlation_id = request.headers.get("X-Correlation-Id")

    safe_log_user_event(
        event_type,  # type: ignore[arg-type]
        target,
        operator=operator,
        details=details,
        success=success,
        correlation_id=correlation_id,
    )


def _register_middleware(app: Flask, trusted_proxy_networks: list):
    """Register before_request/after_request middleware."""

    @app.before_request
    def enforce_proxy_headers() -> None:
        """Validate proxy headers from trusted sources only."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        original_remote = request.environ.get("werkzeug.proxy_fix.orig", {}).get("REMOTE_ADDR")
        if forwarded_for and original_remote:
            try:
                address = ipaddress.ip_address(original_remote)
                if not any(address in network for network in trusted_proxy_networks):
                    abort(400, description="Untrusted proxy")
            except ValueError:
                abort(400, description="Invalid proxy address")

        if forwarded_for and "," in forwarded_for:
            abort(400, description="Multiple forwarded clients not permitted")

    @app.before_request
    def enforce_content_type() -> None:
        """Bodies of state-changing requests must be JSON or form-encoded."""
        if request.method not in {"POST", "PUT", "PATCH"}:
            return
        if not request.content_length:
            return
        if request.is_json or request.mimetype in BODY_MIMETYPES:
            return
        abort(415)

    @app.after_request
    def add_correlation_id(response):
        """Echo the caller's correlation ID for tracing."""
        correlation_id = request.headers.get("X-Correlation-Id")
        if correlation_id:
            response.headers["X-Correlation-Id"] = correlation_id
        return response


# ─────────────────────────────────────────────────────────────────────────────
# Application Instance (for Gunicorn)
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)

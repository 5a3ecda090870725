# Overview: Request decorators for API routes (authentication gate + idle timeout).

from functools import wraps

from flask import current_app, g

from .workspace import current_workspace, release_workspace, respond

LOGIN_REDIRECT = "/login"


def require_auth(f):
    """
    Require a signed-in workspace.

    Sets g.workspace (via current_workspace()) for the route.

    Answers 401 with a redirect payload if:
    - the session cookie names no live workspace, or one with no identity
    - the idle timer ran out since the previous request (the session is
      signed out, a "Session Expired" notification is queued and the
      workspace is released)

    Otherwise the request counts as activity and the idle timer restarts.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        workspace = current_workspace()

        if workspace is None or not workspace.auth.is_authenticated:
            release_workspace()
            return respond({"error": "Authentication required", "redirect": LOGIN_REDIRECT}, 401)

        if workspace.idle.expired():
            current_app.logger.info(
                "Signing out %s after %s of inactivity", workspace.auth.user.email, workspace.idle.idle_for()
            )
            workspace.auth.expire()
            release_workspace()
            return respond({"error": "Session expired", "redirect": LOGIN_REDIRECT}, 401)

        workspace.idle.touch()
        g.current_user = workspace.auth.user
        return f(*args, **kwargs)

    return decorated_function

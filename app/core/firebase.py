from firebase_admin import get_app, initialize_app

from app.core.settings import get_settings


def init_firebase() -> None:
    """Initialize Firebase Admin SDK (idempotent).

    Only ID-token verification is used, which needs the project id (the
    expected token audience) but no service account. Credentials are still
    picked up from GOOGLE_APPLICATION_CREDENTIALS when present.
    """
    try:
        get_app()
    except ValueError:
        settings = get_settings()
        options = {}
        if settings.firebase_project_id:
            options["projectId"] = settings.firebase_project_id
        initialize_app(options=options)

from .wizard import intake_bp  # noqa: F401

"""Staff intranet service: quick-link taxonomy with role-gated administration."""

__version__ = "1.0.0"

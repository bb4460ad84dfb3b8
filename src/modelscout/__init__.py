"""modelscout: model introspection and semantic documentation search."""

__version__ = "0.1.0"

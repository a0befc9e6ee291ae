"""SessionAgent - storefront session tracking and notification agent."""

__version__ = "0.1.0"

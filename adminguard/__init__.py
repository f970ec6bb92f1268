"""adminguard — role-gated admin API with security event logging and abuse detection."""

__version__ = "0.1.0"

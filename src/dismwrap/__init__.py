"""dismwrap: DISM interceptor that retires the IIS-LegacySnapIn feature."""

__version__ = "2.1.0"

"""pagemd — render web pages in Chromium and return their main content as markdown."""

__version__ = "1.0.0"

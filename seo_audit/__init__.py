"""SEO audit backend: crawl a site, run the rule catalog, score the results."""

__version__ = "0.1.0"

"""Business logic services for the SEO audit pipeline."""

"""Services subpackage - persistence collaborators and application services."""

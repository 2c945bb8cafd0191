"""Visual evaluation of fitted models."""

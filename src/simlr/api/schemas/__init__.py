"""Request and response models for the JSON API."""

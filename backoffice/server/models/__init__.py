"""Request and response models for the back-office API."""

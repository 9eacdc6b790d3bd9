"""Core building blocks shared by all features: settings, errors, database."""

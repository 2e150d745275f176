"""Core building blocks shared across features: settings, database, exceptions."""

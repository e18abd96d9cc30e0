"""Business-logic services for docportal."""

"""Leaf services: numeric coercion, year location, keyword matching, classification."""

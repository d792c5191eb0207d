"""Blueprints da API JSON."""

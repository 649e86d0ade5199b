"""Briques de base : logging, configuration, découverte, fingerprint, cache."""

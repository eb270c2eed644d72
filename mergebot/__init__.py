"""Mergebot: builds pull requests on Jenkins and reports results as comments."""

__version__ = "0.1.0"

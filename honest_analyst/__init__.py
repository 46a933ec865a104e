"""Honest Analyst: hypothesis evaluation with a Bayesian confirmation metric."""

__version__ = "0.1.0"

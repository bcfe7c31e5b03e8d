"""Interaction matrices, driving fields and dynamics of atomic ensembles."""

"""Substitution-cipher word puzzles over the OSI model layers."""

"""Nightmare Studio - turn photos into horror stills and animate them."""

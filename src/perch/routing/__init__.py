"""Routing — pattern compilation and an ordered route table.

Pattern routes use ``:name`` / ``:name?`` parameters and resolve first-match
by registration order; prefix responders claim whole path subtrees.
"""

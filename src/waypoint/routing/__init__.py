"""Routing — route table, pattern compiler, scoped registration, resolver.

Routes are registered once at startup and matched by specificity: the
candidate with the fewest captured arguments and the most literal text wins.
"""

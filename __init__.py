"""
Quantile Cut Points

Discretization stage for histogram-based tree learners. Each continuous feature
is reduced to a small number of ordered bins whose boundaries ("cut points")
never fall inside a run of equal values, keep a minimum number of instances per
bin, and break ties through a seeded, reproducible random stream.

See README.md for the algorithm overview and DESIGN.md for design decisions.
"""

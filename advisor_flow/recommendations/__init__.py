"""
Recommendation synthesis: converts a completed decision path into a
``FinalRecommendation`` (summary, ranked recommendations, action plan and
numeric projections).

Modules
-------
bands       : leading_int() / token() / band() value parsing — pure helpers.
synthesizer : synthesize() + per-family builders — pure functions, no DB or I/O.
"""

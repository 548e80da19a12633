"""
Domain models (frozen pydantic).

  tree           — Option, Step, DecisionTree
  path           — PathEntry, DecisionPath
  recommendation — ActionStep, Projections, FinalRecommendation
  progress       — NavState and the Progress API result models
"""

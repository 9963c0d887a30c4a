"""
Meal photo recognition pipeline.

Turns a meal photo (plus optional description) into a calorie and
macro annotated food list, cross-referenced with the Japanese food
composition tables when available.

Structure:
- domain/: Models, prompts, normalizer, fallback estimator, aggregator
- infrastructure/: Vision providers, retry, image processing, Supabase
- application/: Analysis pipeline and nutrition enrichment
- api/: FastAPI router
- metrics/: In-memory metrics registry
"""

__version__ = "1.0.0"

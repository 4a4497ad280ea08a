"""
Meal capture & recognition pipeline.

Turns a camera frame or uploaded photo into one normalized nutrition
record through barcode lookup, object detection or generative image
analysis, and submits it as a meal.

Structure:
- domain/: Models, ports, errors and pure normalization logic
- application/: Camera session, capture adapter, dispatcher, form state
- infrastructure/: Camera, zxing, OpenFoodFacts, detection, OpenAI, Supabase
- tests/: Unit test suite
"""

__version__ = "1.0.0"

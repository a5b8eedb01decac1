"""FastAPI routes and endpoints.

Endpoints:
- GET /health: Service health status
- GET /ready: Readiness probe (classifier service configured)
- POST /v1/classify: Classify a phrase
- POST /v1/search: Find stored objects matching a phrase
- GET /v1/classifiers/current: Current classifier generation
- POST /v1/classifiers/train: Train a new generation if needed
- POST /v1/classifiers/cleanup: Delete superseded generations
"""

"""
Spark Finder - HTTP integration

- api.py: FastAPI REST server exposing ranking, velocity, trajectory and
  enrichment endpoints

Quick Start:

   ```bash
   pip install -e .
   uvicorn agent.api:app --port 8080
   ```

   or ``spark-finder serve``.
"""

__version__ = "1.0.0"

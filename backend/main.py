"""
Sentinel Backend — FastAPI entry point for the Uzbekistan crime dashboard.
Modular layout:
  config.py, models.py, geo_data.py, incidents.py, classifier.py,
  region_stats.py, analyst.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

# Startup loads regions.json plus the per-region district files and expands
# all three jinoyat_turlari datasets into cached incident snapshots
from routes import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

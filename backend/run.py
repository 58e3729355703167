#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

Payments default to disabled so bookings can be exercised locally
without Stripe credentials; export STRIPE_DISABLED=0 to use Stripe.
"""
import os
from pathlib import Path
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("STRIPE_DISABLED", "1")

import uvicorn  # noqa: E402

if __name__ == "__main__":
    print("Starting Lessonbook API at http://localhost:8000 (docs at /docs)")
    uvicorn.run("lessonbook.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")

"""
Serverless entry point: exposes the SoundNest ASGI app as an AWS Lambda /
Vercel handler through Mangum.
"""
import os
import sys

# The deploy bundle runs from api/, the soundnest package lives one level up
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mangum import Mangum

from soundnest.api.main import app

# lifespan "auto" runs the database init on cold start
handler = Mangum(app, lifespan="auto")

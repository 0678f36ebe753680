"""
Run the API: python -m order_api
"""
import uvicorn

from order_api.config import settings

if __name__ == "__main__":
    uvicorn.run("order_api.main:app", host=settings.api_host, port=settings.api_port)

#!/usr/bin/env python3
"""
Script para arrancar el servidor Blogosphere
"""
import os

import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    print(f"🚀 Arrancando servidor en http://localhost:{port}")
    print(f"📍 Health check: http://localhost:{port}/health")

    uvicorn.run(
        "blogosphere.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("ENV", "development") == "development",
        log_level="info"
    )

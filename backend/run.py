"""
启动脚本

在 backend 目录下执行：python run.py
"""

import uvicorn

from blog_assistant.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "blog_assistant.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )

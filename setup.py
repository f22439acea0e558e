from setuptools import setup, find_packages

setup(
    name="smartassess",
    version="0.1.0",
    packages=find_packages(include=["smartassess", "smartassess.*"]),
    package_data={"smartassess": ["alembic/env.py", "alembic/versions/*.py"]},
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.22.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "alembic>=1.11.0",
        "aiosqlite>=0.19.0",
        "aiohttp>=3.8.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "httpx>=0.24.0",
        ],
    },
    python_requires=">=3.10",
)

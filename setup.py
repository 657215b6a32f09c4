from setuptools import setup, find_packages

setup(
    name="dentalhub",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic",
        "python-dotenv",
        "httpx",
        "anyio",
        "sqlalchemy[asyncio]",
        "aiosqlite",
        "asyncpg",
        "python-jose",
    ],
    extras_require={
        "test": [
            "pytest",
            "httpx",
            "anyio",
        ],
    },
)

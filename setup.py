"""
Setup script for the Elevora billing core
"""
from setuptools import setup, find_packages

setup(
    name="elevora",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10,<3.14",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "sqlalchemy>=2.0",
        "psycopg2-binary>=2.9",
        "pydantic>=2.0",
        "python-dotenv>=1.0",
        "stripe>=8.0",
        "python-jose[cryptography]>=3.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "httpx>=0.25",
        ],
    },
)

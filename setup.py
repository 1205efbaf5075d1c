from setuptools import setup, find_packages

setup(
    name="taskreminder",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "sqlalchemy>=2.0",
        "psycopg2-binary",
        "python-dotenv",
        "pydantic>=2",
        "pydantic-settings",
        "apscheduler>=3.10,<4",
        "prometheus-client",
        "tzdata",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)

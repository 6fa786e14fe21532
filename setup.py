"""Setup script for the marketplace event core following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="quhealthy-event-core",
    version="1.0.0",
    description="Marketplace event core - idempotent event propagation and entity lifecycles",
    author="QuHealthy Platform Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(
        where="src",
        include=["shared*", "appointments*", "onboarding*", "payments*", "notifications*"],
    ),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2",
        "psycopg2-binary",
        "redis",
        "requests",
        "tenacity",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "appointments-consumer=appointments.entrypoints.redis_eventconsumer:main",
            "onboarding-consumer=onboarding.entrypoints.redis_eventconsumer:main",
            "payments-consumer=payments.entrypoints.redis_eventconsumer:main",
            "notifications-consumer=notifications.entrypoints.redis_eventconsumer:main",
            "payments-api=payments.entrypoints.payment_api:main",
            "notifications-api=notifications.entrypoints.notification_api:main",
            "notifications-retry-sweep=notifications.entrypoints.retry_sweep:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
    ],
)

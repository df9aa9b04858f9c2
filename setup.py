from setuptools import setup, find_packages

setup(
    name="queuewatch",
    version="0.1.0",
    description="Inspect and prune Redis-backed job queues",
    author="QueueWatch Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "redis>=4.5",
        "click>=8.0",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "queuewatch=queuewatch.cli:main",
        ],
    },
)

from setuptools import setup, find_packages

setup(
    name="hndigest",
    version="0.1.0",
    description="HN Digest - Hacker News scraper and article summarizer",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "aiohttp>=3.8.0",
        "beautifulsoup4>=4.10.0",
        "trafilatura>=1.2.0",
        "playwright>=1.40.0",
        "openai>=1.40.0",
        "pydantic>=2.0",
        "tqdm>=4.62.0",
        "backoff>=2.0.0",
        "pyyaml>=6.0",
        "async-timeout>=4.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "hndigest=hndigest.cli:main",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)

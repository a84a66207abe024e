from setuptools import setup, find_packages

setup(
    name="nebula-captions",
    version="0.1.0",
    description="Live room captions and rolling summaries for virtual conferences",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "google-cloud-speech>=2.16.0",
        "google-auth>=2.10.0",
        "rich>=12.5.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.9.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "pytest-aiohttp>=1.0.4",
        ],
    },
    entry_points={
        "console_scripts": [
            "nebula=nebula.main:main",
        ],
    },
)

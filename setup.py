from setuptools import setup, find_packages

setup(
    name="readaloud",
    version="0.1.0",
    description="Adaptive voice-activity recorder for children's read-aloud exercises",
    author="",
    python_requires=">=3.9",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "numpy>=1.21.0",
        "scipy>=1.7.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "readaloud=readaloud.main:main",
        ],
    },
)

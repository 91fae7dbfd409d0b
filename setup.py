from setuptools import find_packages, setup

setup(
    name="media-pipeline-bdd",
    version="0.1.0",
    packages=find_packages(include=["src", "src.*"]),
    package_dir={"src": "src"},
    install_requires=[line for line in open("requirements-core.txt").read().splitlines() if line],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "media-pipeline-bdd=src.cli:main",
        ],
    },
)

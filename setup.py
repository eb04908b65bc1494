# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="multiverse",
    version="0.1.0",
    description="Versioned module trees: merge per-version overrides onto a base source tree",
    author="Enrique Paredes",
    author_email="eparedesbalen@gmail.com",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["multiverse", "multiverse.*"]),
    python_requires=">=3.9",
    install_requires=[
        "semantic-version",  # npm-style semver ranges
    ],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)

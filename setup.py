from setuptools import find_packages, setup

setup(
    name="distfetch",
    version="0.1.0",
    description="Fetch and unpack versioned release binaries from a distribution gateway",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.10",
    install_requires=[
        "requests",
        "urllib3",
        "PyYAML",
        "platformdirs",
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
)

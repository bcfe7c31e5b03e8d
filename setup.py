from setuptools import setup, find_packages

setup(
    name="atom_optics",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy>=1.21.0",
        "scipy>=1.7.0",
    ],
    extras_require={
        "dev": ["pytest", "black", "mypy", "pylint"],
    },
    python_requires=">=3.8",
)

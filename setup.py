from setuptools import setup, find_packages

setup(
    name="habitat-manifest",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    package_data={"habitat_manifest": ["templates/*.hbs"]},
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.4",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
)

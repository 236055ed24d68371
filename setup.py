from setuptools import setup, find_packages


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="fiberfailure",
    version="0.1.0",
    author="Andrey Golovanov",
    description="Raise fiber failure trees as ordinary Python exceptions.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(exclude=("tests", "dev", "examples")),
    python_requires=">=3.11",
    tests_require=["pytest"],
    extras_require={"test": ["pytest"]},
)

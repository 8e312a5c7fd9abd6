from setuptools import setup, find_packages

setup(
    name="radio-metadata-parser",
    version="1.0.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "requests",
        "python-dotenv",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "radio-metadata=radio_metadata_parser.cli:main",
        ],
    },
    description="Periodic now-playing metadata lookups on ICY (SHOUTcast/Icecast) radio streams",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
)

from setuptools import setup, find_namespace_packages

setup(
    name="lakesurvey",
    version="0.1.0",
    author="Nikolas Yanek-Chrones",
    author_email="research@icarai.io",
    description="A package for normalizing limnology field-survey sheets into a merged time series.",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    keywords=["limnology", "water quality", "secchi", "CSV"],
    python_requires=">=3.11",
    install_requires=[
        "polars>=1.1.0",
        "pandas>=2.2.2",
        "pyarrow>=17.0.0",
        "numpy>=1.26.4",
        "matplotlib>=3.9.1",
        "colorlog>=6.8.2",
        "rich>=13.7.0",
        "rich-argparse>=1.5.0",
    ],
    extras_require={
        "test": ["pytest>=8.0"],
    },
    packages=find_namespace_packages(include=["lakesurvey", "lakesurvey.*"]),
    entry_points={
        "console_scripts": [
            "lakesurvey=lakesurvey.cli.cli:main",
        ],
    },
)

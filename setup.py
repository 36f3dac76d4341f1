#!/usr/bin/env python
import os

from setuptools import find_packages, setup


def get_version():
    about = {}
    path = os.path.join(os.path.dirname(__file__), "src", "layerstack", "version.py")
    with open(path) as f:
        exec(f.read(), about)
    return about["__version__"]


setup(
    name="layerstack",
    version=get_version(),
    description="Layered raster documents with compositing and PSD interchange",
    license="MIT",
    package_dir={"": "src"},
    packages=find_packages("src"),
    python_requires=">=3.9",
    install_requires=[
        "attrs>=23.0.0",
        "numpy>=1.21",
        "Pillow>=9.1.0",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["layerstack=layerstack.cli:main"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Graphics",
    ],
)

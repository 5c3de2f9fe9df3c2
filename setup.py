from setuptools import setup, find_packages
import pathlib


here = pathlib.Path(__file__).parent.resolve()
long_description = (here / 'README.md').read_text(encoding='utf-8')

setup(
    name="conlangkit",
    version="0.1.0",
    description="Word generator and sound change engine for constructed languages",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    packages=find_packages(include=["conlangkit", "conlangkit.*"]),
    python_requires=">=3.8",
    install_requires=[
        'schema',
        'click',
        'pandas',
        'pandera',
        'autopep8',
        'passlib',
    ],
    extras_require={
        'dev': ['pytest', 'pytest-cov'],
    },
    entry_points={
        'console_scripts': ['conlangkit=conlangkit.conlangkit:main'],
    },
)

import setuptools

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="smeltpy",
    version="0.1.0",
    author="smeltpy developers",
    description="Stochastic simulation of correlated wind and near-fault earthquake ground motion time histories",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Topic :: Scientific/Engineering :: Physics",
        "Topic :: Scientific/Engineering :: Visualization",
        "Intended Audience :: Science/Research",
    ],
    packages=setuptools.find_packages(exclude=["tests", "tests.*", "examples"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.25",   # Generator.spawn
        "scipy>=1.6.0",
        "matplotlib",
        "numba",
    ],
    extras_require={
        "test": ["pytest"],
    },
)

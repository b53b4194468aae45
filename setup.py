"""
Setup configuration for Orderflow Cascade package
"""

from setuptools import setup, find_packages


# Read long description from README
def read_long_description():
    try:
        with open("README.md", "r", encoding="utf-8") as fh:
            return fh.read()
    except FileNotFoundError:
        return "Order book microstructure analysis: features, wavelet cascade detection, regime classification"


setup(
    name="orderflow-cascade",
    version="1.0.0",
    author="ML-Framework Team",
    author_email="dev@ml-framework.dev",
    description="Order book microstructure analysis: features, wavelet cascade detection, regime classification",
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="src", exclude=["*.egg-info", "__pycache__"]),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Financial and Insurance Industry",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Financial :: Investment",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.21.0",
        "pandas>=1.3.0",
        "numba>=0.56.0",
        "scipy>=1.7.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-benchmark>=4.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
            "mypy>=0.991",
        ],
    },
    zip_safe=False,
    keywords=[
        "crypto", "trading", "order-book", "market-microstructure",
        "wavelet", "order-flow-imbalance", "regime-detection", "numba",
    ],
)

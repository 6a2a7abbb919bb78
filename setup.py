from setuptools import setup, find_packages

setup(
    name="har-qreg-var",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["models", "errors", "calculate_var"],
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "statsmodels",
        "matplotlib",
        "seaborn",
        "tqdm",
        "psutil",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": ["var-backtest=calculate_var:main"],
    },
    python_requires=">=3.8",
)

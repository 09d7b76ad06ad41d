import re
from setuptools import setup, find_packages

# Read version from image_ranker/__init__.py
with open("image_ranker/__init__.py") as f:
    version = re.search(r'__version__\s*=\s*"(.+?)"', f.read()).group(1)

setup(
    name="image_ranker",
    version=version,
    packages=find_packages(include=["image_ranker", "image_ranker.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "opencv-python",
        "PySide6>=6.6",
        "scikit-image",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'image_ranker=image_ranker.main:main',
        ],
    },
)

from setuptools import setup, find_packages

from urdashboard.__version__ import __version__

with open("README.md", "r", encoding="utf-8") as f:
  long_description = f.read()


extras_dev = [
  "pytest",
  "pytest-timeout",
  "pylint",
  "mypy",
]

extras_all = extras_dev

setup(
  name="urdashboard",
  version=__version__,
  packages=find_packages(exclude=["tests", "tests.*"]),
  description="Client for the dashboard server of Universal Robots controllers",
  long_description=long_description,
  long_description_content_type="text/markdown",
  install_requires=["typing_extensions"],
  package_data={"urdashboard": ["version.txt"]},
  extras_require={
    "dev": extras_dev,
    "all": extras_all,
  },
)

from setuptools import setup, find_packages

from crpi.__version__ import __version__

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
  name="crpi",
  version=__version__,
  packages=find_packages(include=["crpi", "crpi.*"]),
  description="Robot-agnostic CRPI command interface for the Robotiq three-finger gripper",
  long_description=long_description,
  long_description_content_type="text/markdown",
  install_requires=["typing_extensions", "pymodbus>=3.6,<3.10"],
  package_data={"crpi": ["version.txt"]},
  extras_require={
    "dev": extras_dev,
    "all": extras_all,
  },
)

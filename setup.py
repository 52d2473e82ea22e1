import os
from setuptools import setup


DISTNAME = "gaborstim"
DESCRIPTION = "Grating stimulus presentation and response capture"
LICENSE = "BSD (3-clause)"
ZIP_SAFE = False

INSTALL_REQUIRES = [
    "psychopy",
    "numpy",
    "scipy",
    "pandas",
    "pyyaml",
    "Pillow",
    "matplotlib",
]
EXTRAS_REQUIRE = {"test": ["pytest"]}

SCRIPTS = ["scripts/gaborstim"]
PACKAGES = ["gaborstim", "gaborstim.stimuli"]

INCLUDE_PACKAGE_DATA = True


def read_version():
    fname = os.path.join(os.path.dirname(__file__), "gaborstim", "version.py")
    namespace = {}
    with open(fname) as fid:
        exec(fid.read(), namespace)
    return namespace["__version__"]


VERSION = read_version()


if __name__ == "__main__":

    setup(

        name=DISTNAME,
        description=DESCRIPTION,
        license=LICENSE,
        install_requires=INSTALL_REQUIRES,
        extras_require=EXTRAS_REQUIRE,
        zip_safe=ZIP_SAFE,
        scripts=SCRIPTS,
        packages=PACKAGES,
        include_package_data=INCLUDE_PACKAGE_DATA,
        version=VERSION,

    )

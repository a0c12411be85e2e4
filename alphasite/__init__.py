#!python


__project__ = "alphasite"
__version__ = "0.3.0"
__license__ = "Apache"
__description__ = "Conflict-free assignment of modification instances to peptide sites"
__author__ = "Mann Labs"
__author_email__ = "opensource@alphapept.com"
__github__ = "https://github.com/MannLabs/alphasite"
__keywords__ = [
    "bioinformatics",
    "proteomics",
    "post-translational modifications",
    "site localization",
]
__python_version__ = ">=3.10"
__classifiers__ = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "License :: OSI Approved :: Apache Software License",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]
__console_scripts__ = [
    "alphasite=alphasite.cli:run",
]
__urls__ = {
    "Mann Labs at MPIB": "https://www.biochem.mpg.de/mann",
    "GitHub": __github__,
}

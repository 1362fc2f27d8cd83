"""Shared test data."""

import os

SAMPLE_REPORT_LINES = [
    "10.00\t100\t100\tU\t0\tunclassified",
    "90.00\t900\t10\tR\t1\troot",
    "85.00\t850\t0\tR1\t131567\t  cellular organisms",
    "80.00\t800\t50\tD\t2\t    Bacteria",
    "50.00\t500\t100\tP\t1224\t      Pseudomonadota",
    "40.00\t400\t100\tC\t1236\t        Gammaproteobacteria",
    "30.00\t300\t300\tS\t562\t          Escherichia coli",
    "25.00\t250\t50\tP\t1239\t      Bacillota",
    "20.00\t200\t200\tS\t1423\t        Bacillus subtilis",
    "5.00\t50\t50\tD\t2157\t    Archaea",
    "4.00\t40\t40\tD\t10239\t  Viruses",
]
SAMPLE_REPORT = "\n".join(SAMPLE_REPORT_LINES) + "\n"

SAMPLE_LOG = (
    "C\tread1\t562\t150\t562:116\n"
    "C\tread2\t1423\t150\t1423:116\n"
    "C\tread3\t1224\t150\t1224:116\n"
    "U\tread4\t0\t150\t0:116\n"
    "C\tread5\t2157\t150\t2157:116\n"
    "C\tread6\t562\t150\t562:116\n"
)

def write_file(directory: str, name: str, content, mode: str = 'w') -> str:
    """Write content to directory/name and return the path."""
    path = os.path.join(directory, name)
    with open(path, mode) as handle:
        handle.write(content)
    return path

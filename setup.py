"""Optional mypyc build: ``ALLOWHTML_USE_MYPYC=1 pip install .``"""

import os

from setuptools import setup

COMPILED_MODULES = [
    "src/allowhtml/tokenizer.py",
    "src/allowhtml/entities.py",
    "src/allowhtml/serialize.py",
    "src/allowhtml/css.py",
]

ext_modules = []
if os.environ.get("ALLOWHTML_USE_MYPYC") == "1":
    from mypyc.build import mypycify

    ext_modules = mypycify(COMPILED_MODULES, opt_level=os.environ.get("MYPYC_OPT_LEVEL", "3"))

setup(ext_modules=ext_modules)

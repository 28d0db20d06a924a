#!/usr/bin/env python3
from __future__ import annotations

import os
import setuptools
import pathlib
import sys
import toml

__prefix__ = os.getenv('LGRES_PREFIX') or ''
__minver__ = '3.8'
__slogan__ = 'Merge and extract LookingGlass resource files.'
__topics__ = [
    'Development Status :: 3 - Alpha',
    'Operating System :: OS Independent',
    'Programming Language :: Python :: 3 :: Only',
    'Topic :: Games/Entertainment',
    'Topic :: System :: Archiving',
]


def get_config():
    here = pathlib.Path(__file__).parent.absolute()
    sys.path.insert(0, str(here))

    import lgres

    def get_setup_readme(filename: str | pathlib.Path | None = None):
        if filename is None:
            filename = here.joinpath('README.md')
        with open(filename, 'r', encoding='UTF8') as README:
            return README.read()

    def normalize_name(name: str, separator: str = '-'):
        return separator.join([segment for segment in name.strip('_').split('_')])

    with lgres.__unit_loader__ as ldr:
        ldr.load()
        console_scripts = [
            F'{__prefix__}{normalize_name(name)}={path}:{name}.run'
            for name, path in ldr.units.items()
        ]

    ppcfg: dict[str, dict[str, list[str]]] = toml.load(str(here.joinpath('pyproject.toml')))
    requirements = [
        r for r in ppcfg['build-system']['requires'] if not r.startswith(('setuptools', 'wheel'))]

    return dict(
        name=lgres.__distribution__,
        version=lgres.__version__,
        description=__slogan__,
        long_description=get_setup_readme(),
        long_description_content_type='text/markdown',
        python_requires=F'>={__minver__}',
        classifiers=__topics__,
        packages=setuptools.find_packages(include=('lgres*',)),
        install_requires=requirements,
        extras_require={'test': ['flake8']},
        entry_points={'console_scripts': console_scripts},
    )


if __name__ == '__main__':
    setuptools.setup(**get_config())

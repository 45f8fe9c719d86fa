from os import path
from re import match, S
from setuptools import setup

with open(path.join('huijiwiki', '__init__.py'), 'r', encoding='utf-8') as f:
    contents = f.read()
    longdesc = match('^"""(.*?)"""', contents, S).group(1)
    version = match(r'[\s\S]*?__version__[^\'"]+[\'"]([^\'"]+)[\'"]', contents).group(1)
    del contents

with open('README.rst', 'w', encoding='utf-8') as f2:
    f2.write(longdesc)

setup(
    name="huijiwiki-client",
    version=version,
    description="A bot client for HuijiWiki and other MediaWiki wikis.",
    long_description=longdesc,
    license="MIT",
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Topic :: Internet :: WWW/HTTP :: Dynamic Content :: Wiki',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
    ],
    keywords='mediawiki huijiwiki api bot requests',
    packages=["huijiwiki"],
    install_requires=['requests'],
    python_requires='>=3.6',
    extras_require={
        'test': ['pytest'],
    },
)

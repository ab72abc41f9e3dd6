from setuptools import setup, find_packages

setup(
    name='sdfcompose',
    version='0.1.0',
    author='nassimberrada',
    author_email='your.email@example.com',
    description='Flattening and CPU evaluation of hierarchical SDF scenes, with GPU buffer export and mesh extraction.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    url='https://github.com/yourusername/sdfcompose',
    packages=find_packages(exclude=('tests', 'examples')),
    include_package_data=True,
    install_requires=[
        'numpy',
        'scikit-image>=0.17',
        'watchdog',
        'moderngl',
    ],
    extras_require={
        'test': [
            'pytest',
        ]
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Topic :: Multimedia :: Graphics :: 3D Modeling',
        'Topic :: Scientific/Engineering :: Visualization',
    ],
    python_requires='>=3.6',
)

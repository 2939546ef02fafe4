"""Package manager detection.

Classifies a repository from files on its default branch by walking an
ordered cascade: package.json, Corepack declaration, lockfiles, scripts and
finally contributor documentation.
"""

"""Allow running the API as a module: python -m meupaozin."""

from meupaozin.runner import main

if __name__ == "__main__":
    main()

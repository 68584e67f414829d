"""Console entry point."""


def main():
    from dotagents.cli.main import app

    app()


if __name__ == "__main__":
    main()

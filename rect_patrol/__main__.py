from .missions.rectangle_patrol import cli

if __name__ == "__main__":
    cli()

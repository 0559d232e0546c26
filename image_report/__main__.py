from image_report.cli.main import cli

if __name__ == "__main__":
    cli(prog_name="image-report")

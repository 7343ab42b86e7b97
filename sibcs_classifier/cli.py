"""Command-line interface for sibcs-classifier."""

import click

from sibcs_classifier.cli_classify import batch, checklist, classify, orders


@click.group()
@click.version_option(package_name="sibcs-classifier")
def main() -> None:
    """SiBCS Classifier: rule-based Brazilian soil order classification."""


main.add_command(classify)
main.add_command(batch)
main.add_command(checklist)
main.add_command(orders)


if __name__ == "__main__":
    main()

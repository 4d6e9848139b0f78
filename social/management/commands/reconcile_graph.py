from django.core.management.base import BaseCommand

from social.graph import reconcile_graph


class Command(BaseCommand):
    help = "Repair asymmetric connections and accepted requests missing their connection rows"

    def handle(self, *args, **options):
        repaired = reconcile_graph()
        if repaired:
            self.stdout.write(self.style.WARNING(f"Repaired {repaired} connection(s)"))
        else:
            self.stdout.write(self.style.SUCCESS("Social graph is consistent"))

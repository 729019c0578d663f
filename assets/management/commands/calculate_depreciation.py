from django.core.management.base import BaseCommand, CommandError

from core.models import Company
from assets.depreciation import batch_calculate_depreciation


class Command(BaseCommand):
    help = 'Post monthly depreciation for every asset that is due'

    def add_arguments(self, parser):
        parser.add_argument(
            '--company', dest='company',
            help='Business unit code; all active business units when omitted',
        )

    def handle(self, *args, **options):
        companies = Company.objects.filter(is_deleted=False, is_active=True)
        if options.get('company'):
            companies = companies.filter(code=options['company'].upper())
            if not companies.exists():
                raise CommandError(f"Business unit '{options['company']}' not found")

        for company in companies.order_by('code'):
            outcome = batch_calculate_depreciation(company)
            self.stdout.write(self.style.SUCCESS(
                f"{company.code}: {outcome['message']} "
                f"(total {outcome['total_depreciation']}, skipped {outcome['skipped_assets']})"
            ))
            for error in outcome['errors']:
                self.stdout.write(self.style.WARNING(f"  {error['asset_tag']}: {error['message']}"))

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Create or update the back-office staff account from ADMIN_USERNAME / ADMIN_PASSWORD'

    def add_arguments(self, parser):
        parser.add_argument('--username', help='Overrides ADMIN_USERNAME')
        parser.add_argument('--password', help='Overrides ADMIN_PASSWORD')

    def handle(self, *args, **options):
        username = options.get('username') or settings.ADMIN_USERNAME
        password = options.get('password') or settings.ADMIN_PASSWORD
        if not username or not password:
            raise CommandError('ADMIN_USERNAME and ADMIN_PASSWORD must be set')

        User = get_user_model()
        user, created = User.objects.get_or_create(username=username)
        user.is_staff = True
        user.is_active = True
        user.set_password(password)
        user.save()

        if created:
            self.stdout.write(self.style.SUCCESS(f'Created admin user "{username}"'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Updated admin user "{username}"'))

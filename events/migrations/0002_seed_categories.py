from django.db import migrations

CATEGORIES = [
    ('Comedy', 'comedy'),
    ('Conferences', 'conferences'),
    ('Concerts', 'concerts'),
    ('Exhibitions', 'exhibitions'),
    ('Festivals', 'festivals'),
    ('Kids', 'kids'),
    ('Movies', 'movies'),
    ('Other', 'other'),
    ('Sports', 'sports'),
    ('Theatre', 'theatre'),
    ('Workshops', 'workshops'),
]


def seed_forward(apps, schema_editor):
    Category = apps.get_model('events', 'Category')
    for name, slug in CATEGORIES:
        Category.objects.get_or_create(slug=slug, defaults={'name': name})


def seed_backward(apps, schema_editor):
    Category = apps.get_model('events', 'Category')
    Category.objects.filter(slug__in=[slug for _, slug in CATEGORIES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('events', '0001_initial'),
    ]
    operations = [
        migrations.RunPython(seed_forward, reverse_code=seed_backward),
    ]

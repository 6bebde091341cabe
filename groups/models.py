from django.db import models, DEFAULT_DB_ALIAS
from authentication.models import User


class Group(models.Model):
    """A tutorial group of students, led by one staff member who grades them."""
    name = models.CharField(max_length=100)
    leader = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='led_groups', limit_choices_to={'role': 'staff'})
    students = models.ManyToManyField(User, related_name='student_groups', blank=True,
                                      limit_choices_to={'role': 'student'})
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        ordering = ['name']

    @classmethod
    def for_student(cls, student_id, using=DEFAULT_DB_ALIAS):
        """Return the student's group, or None when they are not in one."""
        return (
            cls.objects.using(using)
            .filter(students__id=student_id)
            .select_related('leader')
            .order_by('id')
            .first()
        )

from django.shortcuts import render, redirect
from django.contrib.auth import logout as auth_logout


def landing(request):
    """Public landing page; signed-in users go straight to their dashboard"""
    if request.user.is_authenticated:
        return redirect('assets:dashboard')
    return render(request, "landing.html")


def logout_view(request):
    """Logout that also accepts GET requests"""
    auth_logout(request)
    return redirect('landing')
